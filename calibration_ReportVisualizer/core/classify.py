# calibration_ReportVisualizer/core/classify.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .model import Kind

# ----- naming convention (literal, case-sensitive) -----
ERROR_PREFIX = "Error:"
VALUE_PREFIX = "Value:"
_PREFIXES: tuple[tuple[Kind, str], ...] = (("Error", ERROR_PREFIX), ("Value", VALUE_PREFIX))

_LOG = logging.getLogger(__name__)


def classify_header(name: str) -> tuple[Kind | None, str | None]:
    """Return ``(kind, base)`` for an Error:/Value: column, else ``(None, None)``."""
    for kind, prefix in _PREFIXES:
        if name.startswith(prefix):
            return kind, name[len(prefix):].strip()
    return None, None


def series_value(kind: Kind, raw: float) -> float:
    """Error series are shown as absolute error; values are passed through."""
    return abs(raw) if kind == "Error" else raw


@dataclass(frozen=True)
class Classification:
    error_columns: tuple[str, ...]
    value_columns: tuple[str, ...]
    variable_names: tuple[str, ...]                     # sorted, unique bases
    _error_index: Mapping[str, str] = field(default_factory=dict, repr=False, compare=False)
    _value_index: Mapping[str, str] = field(default_factory=dict, repr=False, compare=False)

    def has_error(self, base: str) -> bool:
        return base in self._error_index

    def has_value(self, base: str) -> bool:
        return base in self._value_index

    def error_column(self, base: str) -> str | None:
        return self._error_index.get(base)

    def value_column(self, base: str) -> str | None:
        return self._value_index.get(base)

    def column(self, kind: Kind, base: str) -> str | None:
        return self.error_column(base) if kind == "Error" else self.value_column(base)


def classify_columns(keys: Iterable[str]) -> Classification:
    """
    Split the first record's keys into Error:/Value: columns and derive the
    variable registry.

      - column order follows ``keys``
      - base = suffix after the prefix, trimmed
      - an Error and a Value column with the same base are one variable
      - if two columns of one kind share a base, the first keeps the lookup
    """
    error_columns: list[str] = []
    value_columns: list[str] = []
    error_index: dict[str, str] = {}
    value_index: dict[str, str] = {}

    for key in keys:
        kind, base = classify_header(str(key))
        if kind is None:
            continue
        if kind == "Error":
            error_columns.append(key)
            if base in error_index:
                _LOG.debug("duplicate error base '%s' (%s ignored for lookup)", base, key)
            error_index.setdefault(base, key)
        else:
            value_columns.append(key)
            if base in value_index:
                _LOG.debug("duplicate value base '%s' (%s ignored for lookup)", base, key)
            value_index.setdefault(base, key)

    names = tuple(sorted(set(error_index) | set(value_index)))
    _LOG.debug("classified %d error / %d value columns into %d variables",
               len(error_columns), len(value_columns), len(names))
    return Classification(
        error_columns=tuple(error_columns),
        value_columns=tuple(value_columns),
        variable_names=names,
        _error_index=error_index,
        _value_index=value_index,
    )
