# calibration_ReportVisualizer/core/session.py
from __future__ import annotations
from pathlib import Path
from typing import Literal
import logging

from ..loaders.csv_loader import ProgressCallback, read_records
from .classify import classify_columns
from .errors import CalibrationError, ExportError
from .model import Generation, Kind, SummaryStatistics, Variable
from .plotting import PlotBounds, SeriesLine, build_series_lines, save_series_chart
from .reports import ReportFormat, write_export, write_summary_report
from .selection import SelectionState, VariableKey, build_registry
from .summary import compute_summary

ExportFormat = Literal["csv", "mat", "both", "png"]

_LOG = logging.getLogger(__name__)


def build_generation(path: Path, *, progress_every: int = 100,
                     progress: ProgressCallback | None = None,
                     filter_text: str = "") -> Generation:
    """Parse, classify and summarize one file. Raises CalibrationError subclasses."""
    dataset = read_records(path, progress_every=progress_every, progress=progress)
    classification = classify_columns(dataset.columns())
    selection = SelectionState(build_registry(classification), filter_text=filter_text)
    summary = compute_summary(dataset, classification.error_columns)
    _LOG.info("classified %s: %d variables (%d error / %d value columns)",
              path.name, len(classification.variable_names),
              len(classification.error_columns), len(classification.value_columns))
    return Generation(dataset=dataset, classification=classification,
                      selection=selection, summary=summary)


class CalibrationSession:
    """
    In-session state for one viewer: file path, theme flag, filter text and
    the current Generation. Every operation is synchronous; failures are
    recorded in ``error_message`` and leave the Generation untouched.
    """

    def __init__(self, file_path: Path | str | None = None, *, dark_mode: bool = False,
                 progress_every: int = 100, progress: ProgressCallback | None = None):
        self.file_path: Path | None = Path(file_path) if file_path else None
        self.dark_mode = dark_mode
        self.progress_every = progress_every
        self.progress = progress
        self.generation: Generation | None = None
        self.error_message: str | None = None
        self._filter_text = ""
        self._view_reset = False

    # ---------- load ----------
    @property
    def is_loaded(self) -> bool:
        return self.generation is not None

    def load(self, path: Path | str | None = None) -> bool:
        target = Path(path) if path is not None else self.file_path
        if target is None:
            self.error_message = "No file selected"
            return False
        try:
            gen = build_generation(target, progress_every=self.progress_every,
                                   progress=self.progress, filter_text=self._filter_text)
        except CalibrationError as e:
            self.error_message = str(e)
            print(f"[WARN] load failed for {target.name}: {e}")
            return False
        self.generation = gen
        self.file_path = target
        self.error_message = None
        self._view_reset = False
        print(f"[OK] loaded {len(gen.dataset)} records, {len(gen.selection)} variables from {target.name}")
        return True

    def reload(self) -> bool:
        if self.file_path is None:
            self.error_message = "No file to reload"
            return False
        return self.load(self.file_path)

    # ---------- filter / selection ----------
    @property
    def filter_text(self) -> str:
        return self._filter_text

    @filter_text.setter
    def filter_text(self, text: str) -> None:
        self._filter_text = text or ""
        if self.generation is not None:
            self.generation.selection.filter_text = self._filter_text

    @property
    def variables(self) -> list[Variable]:
        return self.generation.selection.variables if self.generation else []

    def visible_variables(self) -> list[Variable]:
        return self.generation.selection.visible() if self.generation else []

    def selected_variables(self) -> list[Variable]:
        return self.generation.selection.selected() if self.generation else []

    @property
    def summary(self) -> SummaryStatistics | None:
        return self.generation.summary if self.generation else None

    def _interact(self, action) -> bool:
        if self.generation is None:
            return False
        sel = self.generation.selection
        action(sel)
        changed = sel.commit()
        if changed:
            self._view_reset = True
        return changed

    def set_selected(self, key: VariableKey, flag: bool = True) -> bool:
        return self._interact(lambda s: s.set_selected(key, flag))

    def toggle(self, key: VariableKey) -> bool:
        return self._interact(lambda s: s.toggle(key))

    def select_all_filtered(self) -> bool:
        return self._interact(SelectionState.select_all_filtered)

    def unselect_all_filtered(self) -> bool:
        return self._interact(SelectionState.unselect_all_filtered)

    def unselect_all(self) -> bool:
        return self._interact(SelectionState.unselect_all)

    def take_view_reset(self) -> bool:
        """One-shot: True if the selection changed since the last call."""
        pending, self._view_reset = self._view_reset, False
        return pending

    # ---------- view / export ----------
    def plot_lines(self, kind: Kind) -> list[SeriesLine]:
        if self.generation is None:
            return []
        return build_series_lines(self.generation.dataset, self.selected_variables(), kind)

    def export(self, out_base: Path | str, kind: Kind, fmt: ExportFormat = "csv",
               bounds: PlotBounds | None = None) -> bool:
        """
        Export the selected variables' ``kind`` series. ``out_base`` has no
        extension; the format decides it. Failures only set ``error_message``.
        """
        if self.generation is None:
            self.error_message = "Nothing loaded to export"
            return False
        out_base = Path(out_base)
        try:
            if fmt == "png":
                source = self.generation.dataset.source_path
                title = source.name if source else ""
                save_series_chart(self.plot_lines(kind), out_base.with_suffix(".png"), kind,
                                  title_prefix=title, bounds=bounds, dark_mode=self.dark_mode)
            else:
                write_export(self.generation.dataset, self.selected_variables(), kind, out_base, fmt=fmt)
        except ExportError as e:
            self.error_message = str(e)
            print(f"[WARN] export failed: {e}")
            return False
        return True

    def export_summary(self, out_base: Path | str, fmt: ReportFormat = "csv") -> bool:
        """Write the ranking/trend tables of the current Generation; same failure rules as ``export``."""
        if self.generation is None:
            self.error_message = "Nothing loaded to export"
            return False
        out_base = Path(out_base)
        try:
            source = self.generation.dataset.source_path
            title = f"{source.stem} summary" if source else "summary"
            write_summary_report(self.generation.summary, out_base, title, fmt=fmt)
        except ExportError as e:
            self.error_message = str(e)
            print(f"[WARN] summary export failed: {e}")
            return False
        return True
