# calibration_ReportVisualizer/main.py
from __future__ import annotations
from pathlib import Path
import argparse
import logging
import sys
import yaml

from calibration_ReportVisualizer.core.session import CalibrationSession
from calibration_ReportVisualizer.core.summary import format_percent_change
from calibration_ReportVisualizer.utils.detect import discover_inputs

_KINDS = ("Error", "Value")


def load_config(cfg_path: Path) -> dict:
    with cfg_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _build_cli_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="calibration-report",
        description="Summarize and export calibration-run CSV logs (Error:/Value: columns).",
    )
    p.add_argument("input", nargs="?", help="calibration CSV or folder (overrides input.path)")
    p.add_argument("-o", "--output", help="output root (overrides output.root)")
    p.add_argument("--config", help="YAML config file (default: config.yaml next to this module)")
    p.add_argument("--filter", dest="filter_text", help="variable filter, e.g. 'gain,offset'")
    p.add_argument("--dark", action="store_true", help="render charts with the dark scheme")
    return p


def process_file(path: Path, cfg: dict, out_root: Path) -> bool:
    """Load one CSV, select the filtered variables and write exports + summary."""
    verbose = bool(cfg.get("logging", {}).get("verbose", True))
    session = CalibrationSession(
        dark_mode=bool(cfg.get("theme", {}).get("dark_mode", False)),
        progress_every=int(cfg.get("loading", {}).get("progress_every", 100)),
    )
    session.filter_text = str(cfg.get("selection", {}).get("filter", "") or "")
    if not session.load(path):
        return False

    session.select_all_filtered()
    if verbose:
        names = ", ".join(v.name for v in session.selected_variables()) or "-"
        print(f"  [select] {len(session.selected_variables())}/{len(session.variables)} variable(s): {names}")

    out_dir = out_root / path.stem
    fmt = str(cfg.get("reports", {}).get("format", "csv")).lower()
    export_cfg = cfg.get("export", {}) or {}
    kinds = [k for k in export_cfg.get("kinds", _KINDS) if k in _KINDS]
    ok = True
    for kind in kinds:
        ok &= session.export(out_dir / f"{kind.lower()}_series", kind, fmt=fmt)
        if export_cfg.get("chart", True):
            ok &= session.export(out_dir / f"{kind.lower()}_series", kind, fmt="png")

    summary = session.summary
    ok &= session.export_summary(out_dir / "summary", fmt=fmt)
    if verbose and summary.final_error_ranking:
        col, mag = summary.final_error_ranking[0]
        print(f"  [summary] largest final error: {col} = {mag:g}; "
              f"total error change {format_percent_change(summary.percent_change)}")
    return ok


def main(argv: list[str] | None = None) -> int:
    args = _build_cli_parser().parse_args(argv)

    # ---------- config ----------
    here = Path(__file__).resolve().parent
    cfg = load_config(Path(args.config) if args.config else here / "config.yaml")
    cfg.setdefault("input", {})
    cfg.setdefault("output", {})
    if args.input:
        cfg["input"]["path"] = args.input
    if args.output:
        cfg["output"]["root"] = args.output
    if args.filter_text is not None:
        cfg.setdefault("selection", {})["filter"] = args.filter_text
    if args.dark:
        cfg.setdefault("theme", {})["dark_mode"] = True

    verbose = bool(cfg.get("logging", {}).get("verbose", True))
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    in_path = Path(cfg["input"].get("path", ".")).resolve()
    recurse = bool(cfg["input"].get("recurse", True))
    out_root = Path(cfg["output"].get("root", "calibration_reports")).resolve()
    if verbose:
        print(f"[cfg] input={in_path} (recurse={recurse})")
        print(f"[cfg] output={out_root}")

    # ---------- discover ----------
    detected = discover_inputs(in_path, recurse=recurse)
    if not detected:
        print(f"[INFO] No calibration CSV inputs found under: {in_path}")
        return 0
    out_root.mkdir(parents=True, exist_ok=True)

    failed = 0
    for item in detected:
        if verbose:
            print(f"[load] {item.name}")
        if not process_file(item, cfg, out_root):
            failed += 1

    print(f"[summary] processed {len(detected)} file(s), {failed} with errors")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
