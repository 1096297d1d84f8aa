# calibration_ReportVisualizer/utils/detect.py
from __future__ import annotations
from pathlib import Path


def is_calibration_csv(p: Path) -> bool:
    return p.is_file() and p.suffix.lower() == ".csv"


def discover_inputs(root: Path, recurse: bool = True) -> list[Path]:
    """
    Resolve the file-path source: a single CSV, or every CSV below a folder
    (sorted by path). Anything else, including a missing path, yields [].
    """
    if root.is_file():
        return [root.resolve()] if is_calibration_csv(root) else []
    if not root.is_dir():
        return []
    pattern = root.rglob("*.[cC][sS][vV]") if recurse else root.glob("*.[cC][sS][vV]")
    return sorted(p.resolve() for p in pattern if is_calibration_csv(p))
