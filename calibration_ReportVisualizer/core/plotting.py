# calibration_ReportVisualizer/core/plotting.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence
import logging
import matplotlib.pyplot as plt
import numpy as np

from .classify import series_value
from .errors import ExportError
from .model import Dataset, Kind, Variable

_LOG = logging.getLogger(__name__)

PLOT_TITLES: dict[str, tuple[str, str]] = {
    "Error": ("Error Convergence", "Absolute Error"),
    "Value": ("Value Evolution", "Value"),
}


@dataclass(frozen=True)
class SeriesLine:
    name: str
    color: str
    x: np.ndarray        # iterations
    y: np.ndarray


@dataclass(frozen=True)
class PlotBounds:
    x_min: float
    x_max: float
    y_min: float
    y_max: float


def build_series_lines(dataset: Dataset, variables: Sequence[Variable], kind: Kind) -> list[SeriesLine]:
    """One line per variable that has a ``kind`` column; points only where the record has it."""
    lines: list[SeriesLine] = []
    for var in variables:
        col = var.column(kind)
        if col is None:
            continue
        xs, ys = [], []
        for r in dataset.records:
            val = r.fields.get(col)
            if val is None:
                continue
            xs.append(float(r.iteration))
            ys.append(series_value(kind, val))
        lines.append(SeriesLine(name=var.name, color=var.color,
                                x=np.asarray(xs, float), y=np.asarray(ys, float)))
    return lines


def _span(lo: float, hi: float, margin: float) -> tuple[float, float]:
    if hi > lo:
        pad = (hi - lo) * margin
    else:
        pad = abs(hi) * margin or 1.0
    return lo - pad, hi + pad


def auto_bounds(lines: Sequence[SeriesLine], margin: float = 0.1) -> PlotBounds | None:
    """Data range on x, data range plus ``margin`` on y. None without finite data."""
    xs = np.concatenate([ln.x for ln in lines]) if lines else np.empty(0)
    ys = np.concatenate([ln.y for ln in lines]) if lines else np.empty(0)
    xs = xs[np.isfinite(xs)]
    ys = ys[np.isfinite(ys)]
    if xs.size == 0 or ys.size == 0:
        return None
    x_min, x_max = float(xs.min()), float(xs.max())
    if x_max <= x_min:
        x_min, x_max = x_min - 0.5, x_max + 0.5
    y_min, y_max = _span(float(ys.min()), float(ys.max()), margin)
    return PlotBounds(x_min, x_max, y_min, y_max)


def save_series_chart(lines: Sequence[SeriesLine],
                      out_path: Path,
                      kind: Kind,
                      *,
                      title_prefix: str = "",
                      bounds: PlotBounds | None = None,
                      dark_mode: bool = False,
                      legend_ncol: int = 4,
                      dpi: int = 160) -> Path:
    """
    Render ``lines`` to a raster file. Uses ``bounds`` when given (the view's
    visible range), otherwise the data range with a 10% value margin.
    """
    title, y_label = PLOT_TITLES[kind]
    if bounds is None:
        bounds = auto_bounds(lines)

    out_path = Path(out_path)
    style = "dark_background" if dark_mode else "default"
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with plt.style.context(style):
            fig = plt.figure(figsize=(11, 6))
            try:
                ax = fig.add_subplot(111)
                for ln in lines:
                    ax.plot(ln.x, ln.y, color=ln.color, linewidth=2.0, label=ln.name)
                if bounds is not None:
                    ax.set_xlim(bounds.x_min, bounds.x_max)
                    ax.set_ylim(bounds.y_min, bounds.y_max)
                ax.set_xlabel("Iteration")
                ax.set_ylabel(y_label)
                ax.set_title(f"{title_prefix} — {title}" if title_prefix else title)
                ax.grid(True, alpha=0.3)
                if lines:
                    ax.legend(fontsize=8, ncol=legend_ncol, loc="upper center",
                              bbox_to_anchor=(0.5, -0.15), frameon=False)
                fig.tight_layout(rect=[0, 0.12, 1, 1])
                fig.savefig(out_path, dpi=dpi)
            finally:
                plt.close(fig)
    except (OSError, ValueError) as e:
        raise ExportError(f"Failed to write chart {out_path}: {e}") from e

    if not lines:
        _LOG.info("%s chart has no series (no selected variable has a %s column)", kind, kind)
    print(f"[OK] {kind} chart: {len(lines)} series → {out_path}")
    return out_path
