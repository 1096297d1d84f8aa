# calibration_ReportVisualizer/core/reports.py
from __future__ import annotations
from pathlib import Path
from typing import Literal, Sequence
import logging, re
import numpy as np
import pandas as pd
from scipy.io import savemat

from .classify import series_value
from .errors import ExportError
from .model import Dataset, Kind, SummaryStatistics, Variable
from .summary import format_percent_change

ReportFormat = Literal["csv", "mat", "both"]

_LOG = logging.getLogger(__name__)


def export_header(var: Variable, kind: Kind) -> str:
    return f"{var.name}_{kind}"


def build_export_frame(dataset: Dataset, variables: Sequence[Variable], kind: Kind) -> pd.DataFrame:
    """
    ``Iteration`` plus one ``<Var>_<Kind>`` column per variable that has a
    ``kind`` column. One row per record; absent cells are NaN (blank in CSV).
    """
    data: dict[str, list] = {"Iteration": dataset.iterations}
    for var in variables:
        col = var.column(kind)
        if col is None:
            continue
        cells = []
        for r in dataset.records:
            val = r.fields.get(col)
            cells.append(np.nan if val is None else series_value(kind, val))
        data[export_header(var, kind)] = cells
    df = pd.DataFrame(data)
    df["Iteration"] = df["Iteration"].astype("int64")
    return df


def _write_csv(df_out: pd.DataFrame, out_csv: Path, title: str) -> None:
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    df_out.to_csv(out_csv, index=False, encoding="utf-8", na_rep="")
    print(f"[OK] wrote {title} → {out_csv}")


def _mat_field(name: str) -> str:
    """MATLAB struct field name from an arbitrary header."""
    s = re.sub(r"[^A-Za-z0-9_]+", "_", name).strip("_")
    if not s or not s[0].isalpha():
        s = f"v_{s}"
    return s[:63]


def _write_mat(df_out: pd.DataFrame, out_mat: Path, varname: str, title: str) -> None:
    """
    Save a MATLAB struct with one field per column. Numeric columns become
    double (Nx1) with NaN for absent cells; text columns become cell arrays.
    """
    out_mat.parent.mkdir(parents=True, exist_ok=True)
    mat_struct: dict[str, np.ndarray] = {}
    for col in df_out.columns:
        field = _mat_field(str(col))
        while field in mat_struct:
            field = f"{field}_"[:63]
        ser = df_out[col]
        if pd.api.types.is_numeric_dtype(ser):
            mat_struct[field] = ser.to_numpy(dtype=float).reshape(-1, 1)
        else:
            arr = np.empty((len(ser), 1), dtype=object)
            arr[:, 0] = ser.astype(str).tolist()
            mat_struct[field] = arr
    savemat(out_mat, {varname: mat_struct})
    print(f"[OK] wrote {title} → {out_mat}")


def _write(df_out: pd.DataFrame, out_base: Path, title: str,
           fmt: ReportFormat, mat_variable: str) -> list[Path]:
    if fmt not in ("csv", "mat", "both"):
        raise ExportError(f"Unknown export format: {fmt!r}")
    out_base = Path(out_base)
    written: list[Path] = []
    try:
        if fmt in ("csv", "both"):
            _write_csv(df_out, out_base.with_suffix(".csv"), title)
            written.append(out_base.with_suffix(".csv"))
        if fmt in ("mat", "both"):
            _write_mat(df_out, out_base.with_suffix(".mat"), mat_variable, title)
            written.append(out_base.with_suffix(".mat"))
    except (OSError, ValueError, TypeError) as e:
        raise ExportError(f"Failed to write {title} to {out_base}: {e}") from e
    return written


def write_export(dataset: Dataset,
                 variables: Sequence[Variable],
                 kind: Kind,
                 out_base: Path,
                 fmt: ReportFormat = "csv",
                 mat_variable: str = "series") -> list[Path]:
    """
    Write the ``kind`` series of ``variables``.
    - out_base is a *base path without extension* (e.g., .../error_series)
    - fmt: "csv" | "mat" | "both"
    Variables without a ``kind`` column are skipped.
    """
    df_out = build_export_frame(dataset, variables, kind)
    return _write(df_out, out_base, f"{kind} series", fmt, mat_variable)


def _ranking_frame(summary: SummaryStatistics) -> pd.DataFrame:
    rows = [{"rank": i, "column": col, "final_abs_error": mag}
            for i, (col, mag) in enumerate(summary.final_error_ranking, start=1)]
    return pd.DataFrame(rows, columns=["rank", "column", "final_abs_error"])


def _trend_frame(summary: SummaryStatistics) -> pd.DataFrame:
    df = pd.DataFrame(list(summary.total_error_trend), columns=["Iteration", "total_abs_error"])
    df["Iteration"] = df["Iteration"].astype("int64")
    return df


def write_summary_report(summary: SummaryStatistics,
                         out_base: Path,
                         title: str,
                         fmt: ReportFormat = "csv") -> list[Path]:
    """
    Final-error ranking → ``<out_base>_ranking``; total-error trend →
    ``<out_base>_trend``.
    """
    out_base = Path(out_base)
    written = _write(_ranking_frame(summary), out_base.with_name(out_base.name + "_ranking"),
                     f"{title} ranking", fmt, "ranking")
    written += _write(_trend_frame(summary), out_base.with_name(out_base.name + "_trend"),
                      f"{title} trend", fmt, "trend")
    print(f"[INFO] {title}: total error change {format_percent_change(summary.percent_change)}")
    return written
