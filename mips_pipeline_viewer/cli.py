import argparse
import logging
import sys
import threading

from .config import SAMPLE_PROGRAM, MODE_NAMES, tick_interval_ms, default_mode_name
from .controller import CycleController
from .errors import PipelineError
from .export import timeline_rows, write_log_csv, write_timeline_csv
from .program import load_program, parse_program
from .stages import Mode
from .ticker import ThreadTicker

def format_diagram(rows) -> str:
    widths = [max(len(r[i]) for r in rows) for i in range(len(rows[0]))]
    return "\n".join("  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip() for row in rows)

def run_headless(words, mode: Mode, interval_ms: int, out=None) -> CycleController:
    out = out if out is not None else sys.stdout
    controller = CycleController(ThreadTicker(interval_ms), mode=mode)
    done = threading.Event()
    def on_state(snap):
        stages = " ".join(s.label if s is not None else "--" for s in snap.instruction_stages)
        print(f"Cycle {snap.current_cycle:>3}/{snap.max_cycles}  {stages}", file=out)
        if snap.is_finished:
            done.set()
    controller.subscribe(on_state)
    controller.start_simulation(words)
    while not done.wait(0.05):
        if not controller.ticker.active and not controller.snapshot().is_finished:
            raise PipelineError("simulation stopped before finishing; see log for the failing tick")
    snap = controller.snapshot()
    print("", file=out)
    print(format_diagram(timeline_rows(snap.schedule, list(snap.instructions))), file=out)
    stats = controller.stats()
    print(f"\nMode: {snap.mode.value}  Cycles: {stats['max_cycles']}  Completed: {stats['completed']}  "
          f"Stalls: {stats['stalls']}  Forwards: {stats['forwards']}", file=out)
    return controller

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mips-pipeline-viewer", description="MIPS 5-stage pipeline viewer")
    parser.add_argument("--file", "-f", type=str, default=None,
                        help="Path to a hex file with one instruction per line")
    parser.add_argument("--mode", "-m", choices=MODE_NAMES, default=None,
                        help="Hazard handling mode (default normal)")
    parser.add_argument("--interval", "-i", type=int, default=None,
                        help="Milliseconds per cycle")
    parser.add_argument("--headless", action="store_true",
                        help="Run in the terminal without opening a window")
    parser.add_argument("--export-log", type=str, default=None,
                        help="Write the per-cycle event log as CSV (headless only)")
    parser.add_argument("--export-diagram", type=str, default=None,
                        help="Write the pipeline diagram as CSV (headless only)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log controller transitions")
    return parser

def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(stream=sys.stdout, level="INFO" if args.verbose else "WARNING")
    mode = Mode.parse(args.mode or default_mode_name() or Mode.NORMAL)
    interval = args.interval if args.interval and args.interval > 0 else tick_interval_ms()
    try:
        words = load_program(args.file) if args.file else None
        if not args.headless:
            from .app import run
            run(mode=mode, interval_ms=interval, program="\n".join(words) if words else None)
            return 0
        controller = run_headless(words or parse_program(SAMPLE_PROGRAM), mode, interval)
    except PipelineError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    snap = controller.snapshot()
    if args.export_log:
        write_log_csv(controller.log, args.export_log)
    if args.export_diagram:
        write_timeline_csv(snap.schedule, list(snap.instructions), args.export_diagram)
    return 0
