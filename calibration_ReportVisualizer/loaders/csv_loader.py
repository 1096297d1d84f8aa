# calibration_ReportVisualizer/loaders/csv_loader.py
from __future__ import annotations
from pathlib import Path
from typing import Callable
import io, re, logging
import numpy as np
import pandas as pd

from ..core.errors import EmptyDatasetError, FileAccessError, ParseError
from ..core.model import Dataset, Record

ITERATION_COLUMN = "Iteration"
_NAN_LITERALS = frozenset({"nan", "+nan", "-nan"})
_INT_RE = r"\+?\d+"
MAX_ITERATION = 2**32 - 1
_TOKENIZER_LINE_RE = re.compile(r"line (\d+)")

_LOG = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


# ---------- raw table ----------
def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError as e:
        raise FileAccessError(f"Failed to open file: {path} (not found)") from e
    except OSError as e:
        raise FileAccessError(f"Failed to open file: {path} ({e.strerror or e})") from e


def _df_from_csv_bytes(buff: bytes, path: Path) -> pd.DataFrame:
    """All cells as text; row ``i`` of the result is input line ``i + 2``."""
    try:
        buff.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FileAccessError(f"Failed to read file: {path} (not valid UTF-8)") from e
    try:
        return pd.read_csv(io.BytesIO(buff), sep=",", dtype=str, encoding="utf-8",
                           index_col=False, keep_default_na=False, skip_blank_lines=False)
    except pd.errors.EmptyDataError as e:
        raise ParseError("missing header row", line=1) from e
    except pd.errors.ParserError as e:
        m = _TOKENIZER_LINE_RE.search(str(e))
        raise ParseError(str(e).strip(), line=int(m.group(1)) if m else None) from e


def _cells(df: pd.DataFrame, col: str) -> pd.Series:
    return df[col].fillna("").astype(str).str.strip()


# ---------- typed columns ----------
def _parse_iterations(df: pd.DataFrame) -> tuple[pd.Series, pd.Series]:
    raw = _cells(df, ITERATION_COLUMN)
    ok = raw.str.fullmatch(_INT_RE).fillna(False).astype(bool)
    values = raw.where(ok, "0").map(int)
    ok &= values <= MAX_ITERATION
    return values.where(ok, 0).astype("int64"), ~ok


def _parse_fields(df: pd.DataFrame, cols: list[str]) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """Return (values, present, bad) frames aligned with ``df``."""
    values, present, bad = {}, {}, {}
    for c in cols:
        raw = _cells(df, c)
        has = raw != ""
        num = pd.to_numeric(raw.where(has), errors="coerce")
        nan_literal = raw.str.lower().isin(_NAN_LITERALS)
        values[c] = num.astype(float)
        present[c] = has
        bad[c] = has & num.isna() & ~nan_literal
    return (pd.DataFrame(values, index=df.index, columns=cols),
            pd.DataFrame(present, index=df.index, columns=cols),
            pd.DataFrame(bad, index=df.index, columns=cols))


def _raise_first_bad(df: pd.DataFrame, bad: pd.DataFrame) -> None:
    rows = bad.any(axis=1)
    if not rows.any():
        return
    pos = int(np.argmax(rows.to_numpy()))
    col = bad.columns[int(np.argmax(bad.iloc[pos].to_numpy()))]
    text = df[col].iloc[pos]
    line = int(df.index[pos]) + 2
    expected = f"an integer in 0..{MAX_ITERATION}" if col == ITERATION_COLUMN else "a float"
    raise ParseError(f"column '{col}' expected {expected}, got {text!r}", line=line)


def _report_progress(count: int, every: int, progress: ProgressCallback | None) -> None:
    if every <= 0 or count % every:
        return
    _LOG.info("Loaded %d records...", count)
    if progress is None:
        return
    try:
        progress(count)
    except Exception as e:  # progress is observability only
        _LOG.warning("progress callback failed at %d records: %s", count, e)


# ---------- public loader ----------
def read_records(path: Path | str, *, progress_every: int = 100,
                 progress: ProgressCallback | None = None) -> Dataset:
    """
    Parse a calibration CSV into a Dataset.

    Fails fast: the first malformed cell (in line order) raises ParseError
    with its 1-based line number. A header without rows raises
    EmptyDatasetError. Blank cells are absent fields, not zeros.
    """
    path = Path(path)
    _LOG.info("Starting to load file: %s", path)
    df = _df_from_csv_bytes(_read_bytes(path), path)

    if ITERATION_COLUMN not in df.columns:
        raise ParseError(f"missing required '{ITERATION_COLUMN}' column", line=1)

    # fully blank lines carry no record; drop them without renumbering
    blank = pd.Series(True, index=df.index)
    for c in df.columns:
        blank &= _cells(df, c) == ""
    df = df.loc[~blank]
    if df.empty:
        raise EmptyDatasetError(f"No records found in file: {path}")

    field_cols = [c for c in df.columns if c != ITERATION_COLUMN]
    iterations, bad_iter = _parse_iterations(df)
    values, present, bad = _parse_fields(df, field_cols)
    bad.insert(list(df.columns).index(ITERATION_COLUMN), ITERATION_COLUMN, bad_iter)
    _raise_first_bad(df, bad[list(df.columns)])

    dup = iterations.duplicated()
    if dup.any():
        pos = int(np.argmax(dup.to_numpy()))
        raise ParseError(f"duplicate Iteration {int(iterations.iloc[pos])}",
                         line=int(df.index[pos]) + 2)

    vals = values.to_numpy(dtype=float)
    pres = present.to_numpy(dtype=bool)
    records: list[Record] = []
    for i, it in enumerate(iterations.to_numpy()):
        fields = {field_cols[j]: float(vals[i, j]) for j in np.flatnonzero(pres[i])}
        records.append(Record(iteration=int(it), fields=fields))
        _report_progress(len(records), progress_every, progress)

    _LOG.info("Finished loading %d records", len(records))
    return Dataset(records=tuple(records), source_path=path)
