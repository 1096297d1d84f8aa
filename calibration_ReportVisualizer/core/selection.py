# calibration_ReportVisualizer/core/selection.py
from __future__ import annotations
import logging
from typing import Sequence, Union

from .classify import Classification
from .model import Variable

# red, blue, green, orange, purple, brown, yellow, pink, dark grey, brown
PALETTE: tuple[str, ...] = (
    "#FF0000", "#0000FF", "#00FF00", "#FFA500", "#800080",
    "#A52A2A", "#FFFF00", "#FFC0CB", "#606060", "#A52A2A",
)

VariableKey = Union[int, str]

_LOG = logging.getLogger(__name__)


def build_registry(classification: Classification,
                   palette: Sequence[str] = PALETTE) -> list[Variable]:
    """One Variable per registry name, in registry order, all unselected."""
    return [
        Variable(
            name=name,
            error_column=classification.error_column(name),
            value_column=classification.value_column(name),
            color=palette[pos % len(palette)],
        )
        for pos, name in enumerate(classification.variable_names)
    ]


def filter_terms(text: str) -> list[str]:
    if not text:
        return []
    return [t.strip().lower() for t in text.split(",")]


def matches_filter(name: str, text: str) -> bool:
    """OR over comma-separated, case-insensitive substring terms; empty text matches all."""
    terms = filter_terms(text)
    if not terms:
        return True
    lowered = name.lower()
    return any(t in lowered for t in terms)


class SelectionState:
    """
    Selection flags of the current registry plus the prior-selection snapshot.

    Variables own their own flag; the state object adds filtering and
    edge detection. Index or name keys that do not resolve are ignored.
    """

    def __init__(self, variables: Sequence[Variable], filter_text: str = ""):
        self._variables: list[Variable] = list(variables)
        self._by_name = {v.name: i for i, v in enumerate(self._variables)}
        for v in self._variables:
            v.selected = False
        self._snapshot: tuple[bool, ...] = self.selection_vector()
        self.filter_text = filter_text

    def __len__(self) -> int:
        return len(self._variables)

    @property
    def variables(self) -> list[Variable]:
        return list(self._variables)

    def _resolve(self, key: VariableKey) -> Variable | None:
        if isinstance(key, str):
            idx = self._by_name.get(key)
        else:
            idx = key
        if idx is None or not (0 <= idx < len(self._variables)):
            _LOG.debug("ignoring stale variable key %r", key)
            return None
        return self._variables[idx]

    def get(self, key: VariableKey) -> Variable | None:
        return self._resolve(key)

    # ---------- queries ----------
    def visible(self) -> list[Variable]:
        return [v for v in self._variables if matches_filter(v.name, self.filter_text)]

    def selected(self) -> list[Variable]:
        return [v for v in self._variables if v.selected]

    def selection_vector(self) -> tuple[bool, ...]:
        return tuple(v.selected for v in self._variables)

    # ---------- mutations ----------
    def set_selected(self, key: VariableKey, flag: bool = True) -> None:
        var = self._resolve(key)
        if var is not None:
            var.selected = bool(flag)

    def toggle(self, key: VariableKey) -> None:
        var = self._resolve(key)
        if var is not None:
            var.selected = not var.selected

    def select_all_filtered(self) -> None:
        for v in self.visible():
            v.selected = True

    def unselect_all_filtered(self) -> None:
        for v in self.visible():
            v.selected = False

    def unselect_all(self) -> None:
        for v in self._variables:
            v.selected = False

    # ---------- edge detection ----------
    def commit(self) -> bool:
        """True once per change of the selection vector since the last commit."""
        current = self.selection_vector()
        if current == self._snapshot:
            return False
        self._snapshot = current
        return True
