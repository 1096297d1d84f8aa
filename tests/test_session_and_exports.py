from pathlib import Path
import math
import tempfile
import unittest

import matplotlib
matplotlib.use("Agg")

import pandas as pd
from scipy.io import loadmat

from calibration_ReportVisualizer.core.plotting import PlotBounds, auto_bounds, build_series_lines
from calibration_ReportVisualizer.core.reports import build_export_frame, write_summary_report
from calibration_ReportVisualizer.core.session import CalibrationSession
from calibration_ReportVisualizer.main import main
from calibration_ReportVisualizer.utils.detect import discover_inputs

WORKED_EXAMPLE = (
    "Iteration,Error:X,Value:X,Error:Y\n"
    "0,2.0,10.0,-1.0\n"
    "1,1.0,11.0,-0.5\n"
)


class _TempDirMixin:
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write_csv(self, text: str, name: str = "run.csv") -> Path:
        path = self.tmp / name
        path.write_text(text, encoding="utf-8")
        return path


class SessionLoadTests(_TempDirMixin, unittest.TestCase):
    def test_load_builds_generation(self):
        s = CalibrationSession()
        self.assertTrue(s.load(self.write_csv(WORKED_EXAMPLE)))
        self.assertIsNone(s.error_message)
        self.assertEqual(("X", "Y"), s.generation.classification.variable_names)
        self.assertEqual(((0, 3.0), (1, 1.5)), s.summary.total_error_trend)
        self.assertEqual([False, False], [v.selected for v in s.variables])

    def test_failed_load_keeps_previous_generation(self):
        s = CalibrationSession()
        s.load(self.write_csv(WORKED_EXAMPLE))
        s.set_selected("X")
        before = s.generation

        self.assertFalse(s.load(self.write_csv("Iteration,Error:X\n0,bad\n", "broken.csv")))
        self.assertIn("line 2", s.error_message)
        self.assertIs(before, s.generation)
        self.assertEqual(["X"], [v.name for v in s.selected_variables()])

        self.assertFalse(s.load(self.write_csv("Iteration,Error:X\n", "empty.csv")))
        self.assertIn("No records", s.error_message)
        self.assertIs(before, s.generation)

        self.assertFalse(s.load(self.tmp / "missing.csv"))
        self.assertIs(before, s.generation)

    def test_reload_with_new_columns_replaces_everything(self):
        path = self.write_csv(WORKED_EXAMPLE)
        s = CalibrationSession(path)
        s.load()
        s.select_all_filtered()
        self.assertEqual(2, len(s.selected_variables()))

        path.write_text("Iteration,Error:A,Value:B,Value:C\n5,1.0,2.0,3.0\n", encoding="utf-8")
        self.assertTrue(s.reload())
        gen = s.generation
        self.assertEqual(("A", "B", "C"), gen.classification.variable_names)
        self.assertEqual(("Error:A",), gen.classification.error_columns)
        self.assertEqual([5], gen.dataset.iterations)
        self.assertEqual(((5, 1.0),), gen.summary.total_error_trend)
        self.assertEqual((False, False, False), gen.selection.selection_vector())

    def test_selection_change_raises_one_shot_view_reset(self):
        s = CalibrationSession()
        s.load(self.write_csv(WORKED_EXAMPLE))
        self.assertFalse(s.take_view_reset())
        self.assertTrue(s.toggle("Y"))
        self.assertTrue(s.take_view_reset())
        self.assertFalse(s.take_view_reset())
        self.assertFalse(s.set_selected("Y", True))   # no change, no reset
        self.assertFalse(s.take_view_reset())
        self.assertFalse(s.set_selected(42))          # stale index

    def test_failed_load_keeps_path_of_loaded_file(self):
        good = self.write_csv(WORKED_EXAMPLE)
        s = CalibrationSession()
        s.load(good)
        self.assertFalse(s.load(self.write_csv("Iteration,Error:X\n0,bad\n", "broken.csv")))
        self.assertEqual(good, s.file_path)
        self.assertTrue(s.reload())
        self.assertEqual(good, s.generation.dataset.source_path)

    def test_oversized_iteration_fails_load_without_raising(self):
        s = CalibrationSession()
        self.assertFalse(s.load(self.write_csv("Iteration,Error:X\n99999999999999999999,1.0\n")))
        self.assertIn("line 2", s.error_message)
        self.assertIsNone(s.generation)

    def test_filter_survives_reload(self):
        path = self.write_csv(WORKED_EXAMPLE)
        s = CalibrationSession(path)
        s.filter_text = "y"
        s.load()
        self.assertEqual(["Y"], [v.name for v in s.visible_variables()])
        s.reload()
        self.assertEqual("y", s.generation.selection.filter_text)


class ExportTests(_TempDirMixin, unittest.TestCase):
    def _session(self) -> CalibrationSession:
        s = CalibrationSession()
        s.load(self.write_csv("Iteration,Error:X,Value:X,Error:Y\n0,2.0,10.0,-1.0\n1,,11.0,-0.5\n"))
        s.select_all_filtered()
        return s

    def test_csv_export_headers_and_blank_cells(self):
        s = self._session()
        self.assertTrue(s.export(self.tmp / "out" / "errors", "Error"))
        text = (self.tmp / "out" / "errors.csv").read_text(encoding="utf-8").splitlines()
        self.assertEqual("Iteration,X_Error,Y_Error", text[0])
        self.assertEqual("0,2.0,1.0", text[1])
        self.assertEqual("1,,0.5", text[2])

    def test_variable_without_kind_is_skipped(self):
        s = self._session()
        frame = build_export_frame(s.generation.dataset, s.selected_variables(), "Value")
        self.assertEqual(["Iteration", "X_Value"], list(frame.columns))
        lines = s.plot_lines("Value")
        self.assertEqual(["X"], [ln.name for ln in lines])

    def test_series_lines_skip_absent_points(self):
        s = self._session()
        lines = build_series_lines(s.generation.dataset, s.selected_variables(), "Error")
        x_line = lines[0]
        self.assertEqual([0.0], x_line.x.tolist())
        self.assertEqual([1.0, 0.5], lines[1].y.tolist())

    def test_auto_bounds_adds_value_margin(self):
        s = self._session()
        b = auto_bounds(s.plot_lines("Value"))
        self.assertEqual((0.0, 1.0), (b.x_min, b.x_max))
        self.assertTrue(math.isclose(9.9, b.y_min) and math.isclose(11.1, b.y_max))

    def test_chart_and_mat_exports(self):
        s = self._session()
        s.dark_mode = True
        self.assertTrue(s.export(self.tmp / "charts" / "error", "Error", fmt="png"))
        self.assertTrue((self.tmp / "charts" / "error.png").stat().st_size > 0)
        self.assertTrue(s.export(self.tmp / "charts" / "value", "Value", fmt="png",
                                 bounds=PlotBounds(0, 5, -1, 20)))
        self.assertTrue(s.export(self.tmp / "tables" / "value", "Value", fmt="mat"))
        mat = loadmat(self.tmp / "tables" / "value.mat", squeeze_me=True, struct_as_record=False)
        self.assertEqual([10.0, 11.0], list(mat["series"].X_Value))

    def test_failed_export_leaves_state_untouched(self):
        s = self._session()
        gen, vector = s.generation, s.generation.selection.selection_vector()
        blocker = self.tmp / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        self.assertFalse(s.export(blocker / "sub" / "errors", "Error"))
        self.assertIsNotNone(s.error_message)
        self.assertIs(gen, s.generation)
        self.assertEqual(vector, s.generation.selection.selection_vector())

    def test_summary_report(self):
        s = self._session()
        written = write_summary_report(s.summary, self.tmp / "rep" / "summary", "run")
        self.assertEqual(2, len(written))
        ranking = pd.read_csv(self.tmp / "rep" / "summary_ranking.csv")
        self.assertEqual(["Error:Y"], ranking["column"].tolist())
        trend = pd.read_csv(self.tmp / "rep" / "summary_trend.csv")
        self.assertEqual([3.0, 0.5], trend["total_abs_error"].tolist())

    def test_failed_summary_export_is_recorded(self):
        s = self._session()
        gen = s.generation
        (self.tmp / "rep" / "summary_ranking.csv").mkdir(parents=True)
        self.assertFalse(s.export_summary(self.tmp / "rep" / "summary"))
        self.assertIn("summary_ranking", s.error_message)
        self.assertIs(gen, s.generation)


class CliTests(_TempDirMixin, unittest.TestCase):
    def test_batch_run_writes_outputs_per_file(self):
        runs = self.tmp / "runs"
        runs.mkdir()
        (runs / "good.csv").write_text(WORKED_EXAMPLE, encoding="utf-8")
        (runs / "bad.csv").write_text("Iteration,Error:X\n0,nope\n", encoding="utf-8")
        cfg = self.tmp / "cfg.yaml"
        cfg.write_text(
            "input: {recurse: false}\n"
            "logging: {verbose: false}\n"
            "export: {kinds: [Error, Value], chart: false}\n"
            "reports: {format: csv}\n",
            encoding="utf-8",
        )
        out = self.tmp / "out"
        rc = main([str(runs), "-o", str(out), "--config", str(cfg), "--filter", "x"])
        self.assertEqual(1, rc)           # bad.csv failed, good.csv processed
        errors = pd.read_csv(out / "good" / "error_series.csv")
        self.assertEqual(["Iteration", "X_Error"], list(errors.columns))
        self.assertTrue((out / "good" / "value_series.csv").exists())
        self.assertTrue((out / "good" / "summary_trend.csv").exists())
        self.assertFalse((out / "bad").exists())

    def _config(self) -> Path:
        cfg = self.tmp / "cfg.yaml"
        cfg.write_text(
            "input: {recurse: false}\n"
            "logging: {verbose: false}\n"
            "export: {kinds: [Error], chart: false}\n"
            "reports: {format: csv}\n",
            encoding="utf-8",
        )
        return cfg

    def test_summary_write_failure_does_not_stop_batch(self):
        runs = self.tmp / "runs"
        runs.mkdir()
        (runs / "good.csv").write_text(WORKED_EXAMPLE, encoding="utf-8")
        (runs / "later.csv").write_text(WORKED_EXAMPLE, encoding="utf-8")
        out = self.tmp / "out"
        (out / "good" / "summary_ranking.csv").mkdir(parents=True)
        rc = main([str(runs), "-o", str(out), "--config", str(self._config())])
        self.assertEqual(1, rc)
        self.assertTrue((out / "good" / "error_series.csv").exists())
        self.assertTrue((out / "later" / "summary_ranking.csv").is_file())
        self.assertTrue((out / "later" / "summary_trend.csv").is_file())


class DiscoverInputsTests(_TempDirMixin, unittest.TestCase):
    def test_file_folder_and_missing_paths(self):
        (self.tmp / "b.csv").write_text(WORKED_EXAMPLE, encoding="utf-8")
        (self.tmp / "a.CSV").write_text(WORKED_EXAMPLE, encoding="utf-8")
        (self.tmp / "notes.txt").write_text("x", encoding="utf-8")
        nested = self.tmp / "nested"
        nested.mkdir()
        (nested / "c.csv").write_text(WORKED_EXAMPLE, encoding="utf-8")

        flat = discover_inputs(self.tmp, recurse=False)
        self.assertEqual(["a.CSV", "b.csv"], [p.name for p in flat])
        self.assertEqual(3, len(discover_inputs(self.tmp)))
        self.assertEqual([(self.tmp / "b.csv").resolve()], discover_inputs(self.tmp / "b.csv"))
        self.assertEqual([], discover_inputs(self.tmp / "notes.txt"))
        self.assertEqual([], discover_inputs(self.tmp / "missing"))


if __name__ == "__main__":
    unittest.main()
