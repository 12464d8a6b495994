"""
LaborCurve command line.

Works against a logbook JSON file (default: data/logbook.json).

Usage:
    python -m laborcurve predict enc_1234 --now 2025-03-05T14:30Z
    python -m laborcurve curve --parity multip --duration 8 --epidural
    python -m laborcurve summary enc_1234
    python -m laborcurve export --encounter enc_1234 --output enc.laborlog.json
    python -m laborcurve import backup.laborlog.json --mode merge
    python -m laborcurve dashboard
"""

from __future__ import annotations

import argparse
import json
import logging
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from laborcurve.analysis.summary import build_summary
from laborcurve.config import PATHS
from laborcurve.data.store import LogbookError, LogbookStore, export_filename
from laborcurve.models.predictor import predict_eta
from laborcurve.models.reference_curve import CurveProfile, reference_curve
from laborcurve.ui import UI_DIR
from laborcurve.utils.formatting import fmt_hours, fmt_prob
from laborcurve.utils.numeric import to_utc

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# ============================================================================
# Commands
# ============================================================================

def cmd_predict(args: argparse.Namespace) -> int:
    store = LogbookStore(args.logbook)
    encounter = store.get_encounter(args.encounter_id)
    events = store.list_events(encounter.id)
    now = to_utc(args.now) if args.now else None

    result = predict_eta(encounter, events, store.get_settings(), now=now)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    print(f"Phase: {result.phase.value}")
    if result.has_estimate:
        for name, interval in (("To 10 cm", result.eta_10cm), ("To delivery", result.eta_delivery)):
            print(
                f"{name}: {fmt_hours(interval.mid_hr)} "
                f"({fmt_hours(interval.low_hr)} – {fmt_hours(interval.high_hr)})"
            )
        probs = result.probabilities
        print(
            f"P(≤2h) {fmt_prob(probs.by_2h)}  P(≤4h) {fmt_prob(probs.by_4h)}  "
            f"P(≤8h) {fmt_prob(probs.by_8h)}"
        )
    for line in result.explain:
        print(f"  • {line}")
    return 0


def cmd_curve(args: argparse.Namespace) -> int:
    profile = CurveProfile(
        parity=args.parity,
        duration_hr=args.duration,
        induction=args.induction,
        epidural=args.epidural,
        op=args.op,
    )
    curve = reference_curve(profile)
    frame = pd.DataFrame({"hours": curve.hours, "cm": curve.cm})

    if args.output:
        frame.to_csv(args.output, index=False)
        logger.info(f"Wrote {len(curve)} points to {args.output} (widen {curve.widen:.3f})")
    else:
        print(frame.to_csv(index=False), end="")
    return 0


def cmd_summary(args: argparse.Namespace) -> int:
    store = LogbookStore(args.logbook)
    encounter = store.get_encounter(args.encounter_id)
    print(build_summary(encounter, store.list_events(encounter.id)))
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    store = LogbookStore(args.logbook)
    if args.encounter:
        encounter = store.get_encounter(args.encounter)
        payload = store.export_encounter(encounter.id)
        default_name = export_filename(encounter)
    else:
        payload = store.dump_all()
        default_name = export_filename()

    output = Path(args.output or default_name)
    output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.info(f"Exported to {output}")
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    store = LogbookStore(args.logbook)
    payload = json.loads(Path(args.file).read_text(encoding="utf-8"))
    report = store.import_all(payload, mode=args.mode)
    print(
        f"Imported {report.encounters} encounters, {report.events} events "
        f"({report.skipped} skipped)"
    )
    return 0


def cmd_dashboard(args: argparse.Namespace) -> int:
    return subprocess.call([sys.executable, "-m", "streamlit", "run", str(UI_DIR / "app.py")])


# ============================================================================
# Entry Point
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="laborcurve",
        description="LaborCurve logbook: reference curves and ETA estimates"
    )
    parser.add_argument(
        "--logbook",
        type=str,
        default=PATHS.LOGBOOK_PATH,
        help="Logbook JSON file"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("predict", help="Predict phase and time to delivery")
    p.add_argument("encounter_id")
    p.add_argument("--now", help="Reference instant (ISO 8601, default: now)")
    p.add_argument("--json", action="store_true", help="Print the raw result")
    p.set_defaults(func=cmd_predict)

    p = sub.add_parser("curve", help="Print a reference curve as CSV")
    p.add_argument("--parity", choices=["nullip", "multip"], default="nullip")
    p.add_argument("--duration", type=float, default=12.0, help="Hours")
    p.add_argument("--induction", action="store_true")
    p.add_argument("--epidural", action="store_true")
    p.add_argument("--op", action="store_true", help="OP/OT position")
    p.add_argument("--output", help="CSV file (default: stdout)")
    p.set_defaults(func=cmd_curve)

    p = sub.add_parser("summary", help="Print an encounter summary")
    p.add_argument("encounter_id")
    p.set_defaults(func=cmd_summary)

    p = sub.add_parser("export", help="Export the logbook or one encounter")
    p.add_argument("--encounter", help="Encounter id (default: everything)")
    p.add_argument("--output", help="Output file")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("import", help="Import an export file")
    p.add_argument("file")
    p.add_argument("--mode", choices=["merge", "replace"], default="merge")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("dashboard", help="Launch the Streamlit dashboard")
    p.set_defaults(func=cmd_dashboard)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except LogbookError as e:
        logger.error(f"Logbook error: {e}")
        return 1
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read input: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Invalid value: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
