# calibration_ReportVisualizer/core/model.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Literal, Mapping
import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from .classify import Classification
    from .selection import SelectionState

Kind = Literal["Error", "Value"]


@dataclass(frozen=True)
class Record:
    iteration: int                    # "Iteration" column, unique per load
    fields: Mapping[str, float]       # sparse: absent cells are missing keys, not 0.0

    def __post_init__(self):
        if not isinstance(self.fields, MappingProxyType):
            object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def get(self, column: str) -> float | None:
        return self.fields.get(column)


@dataclass(frozen=True)
class Dataset:
    records: tuple[Record, ...]
    source_path: Path | None = None

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    @property
    def first(self) -> Record | None:
        return self.records[0] if self.records else None

    @property
    def last(self) -> Record | None:
        return self.records[-1] if self.records else None

    @property
    def iterations(self) -> list[int]:
        return [r.iteration for r in self.records]

    def columns(self) -> list[str]:
        """Column set as seen by the first record (the load's schema)."""
        first = self.first
        return list(first.fields.keys()) if first is not None else []

    def to_frame(self, columns: list[str] | None = None) -> pd.DataFrame:
        """Wide view indexed by iteration; absent cells are NaN."""
        cols = self.columns() if columns is None else list(columns)
        data = {c: [r.fields.get(c, np.nan) for r in self.records] for c in cols}
        index = pd.Index(self.iterations, name="Iteration", dtype="int64")
        return pd.DataFrame(data, index=index, columns=cols, dtype=float)


@dataclass
class Variable:
    name: str                         # trimmed base name, e.g. "X" for "Error: X"
    error_column: str | None
    value_column: str | None
    color: str
    selected: bool = False

    @property
    def has_error(self) -> bool:
        return self.error_column is not None

    @property
    def has_value(self) -> bool:
        return self.value_column is not None

    def column(self, kind: Kind) -> str | None:
        return self.error_column if kind == "Error" else self.value_column


@dataclass(frozen=True)
class SummaryStatistics:
    final_error_ranking: tuple[tuple[str, float], ...]
    total_error_trend: tuple[tuple[int, float], ...]
    percent_change: float | None      # None when the baseline is zero or missing


@dataclass(frozen=True)
class Generation:
    """Everything produced by one successful load; swapped in as a unit."""
    dataset: Dataset
    classification: Classification
    selection: SelectionState
    summary: SummaryStatistics
