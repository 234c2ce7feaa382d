"""
main.py

Entry point: replays a recorded snapshot capture through the orchestrator and
prints the events raised and the final standings.

    python -m simtiming.main replay capture.jsonl
    python -m simtiming.main replay capture.jsonl --realtime --hz 20
    python -m simtiming.main init-config settings.ini
"""
import argparse
import logging
import sys
from typing import List, Optional, TextIO

from PyQt5 import QtCore

from simrace_core.events import EventKind, RaceEvent
from simrace_core.model import TelemetrySnapshot
from simtiming.analysis.best_laps import BEST_PERSONAL, BEST_SESSION
from simtiming.core.config import Config
from simtiming.core.config_store import ConfigModel
from simtiming.engine.orchestrator import Orchestrator
from simtiming.replay.replay_reader import ReplayReader
from simtiming.updater.updater import SnapshotUpdater

log = logging.getLogger(__name__)

# per-tick events are too noisy to print
QUIET_KINDS = {EventKind.TELEMETRY_UPDATED, EventKind.SESSION_INFO_UPDATED}


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def describe_event(event: RaceEvent) -> str:
    t = "--" if event.session_time is None else f"{event.session_time:9.2f}"
    kind = event.kind
    if kind == EventKind.DRIVER_SWAP:
        detail = f"slot {event.slot}: {event.previous_name} -> {event.new_name}"
    elif kind == EventKind.PIT_STOP:
        detail = f"{event.driver.name}: {event.phase.value}"
    elif kind == EventKind.FASTEST_LAP:
        detail = f"{event.driver.name}: {event.lap.lap_time:.3f}"
    elif kind == EventKind.LEADER_CHANGE:
        detail = f"{event.driver.name}"
    else:
        detail = ""
    return f"[{t}] {kind.value} {detail}".rstrip()


def format_standings(orch: Orchestrator) -> List[str]:
    session = orch.session_data
    lines = [
        f"{session.event_type.value} - {session.track_name or 'unknown track'} "
        f"(leader lap {session.leader_lap if session.leader_lap is not None else '-'})",
        f"{'Pos':>3} {'Cls':>3} {'#':>4} {'Driver':<24} {'Gap':>9} {'Int':>9} {'Best':>10}",
    ]
    for driver in orch.running_order():
        live = driver.live
        best, marker = orch.best_laps.classify(driver, session)
        if marker == BEST_SESSION:
            best += " *"
        elif marker == BEST_PERSONAL:
            best += " +"
        lines.append(
            f"{live.position if live.position is not None else '-':>3} "
            f"{live.class_position if live.class_position is not None else '-':>3} "
            f"{driver.car_number:>4} {driver.name[:24]:<24} "
            f"{live.delta_to_leader or '':>9} {live.delta_to_next or '':>9} {best:>10}"
        )
    return lines


def replay_sync(path: str, cfg: ConfigModel, out: TextIO, quiet: bool = False) -> Orchestrator:
    """Feed every snapshot of *path* through a fresh Orchestrator in file order."""
    orch = Orchestrator(cfg=cfg)

    def on_event(event: RaceEvent) -> None:
        if event.kind not in QUIET_KINDS:
            print(describe_event(event), file=out)

    if not quiet:
        orch.event_raised.connect(on_event)

    for snapshot in ReplayReader(path):
        if isinstance(snapshot, TelemetrySnapshot):
            orch.on_telemetry_snapshot(snapshot)
        else:
            orch.on_session_snapshot(snapshot)
    return orch


def replay_realtime(path: str, cfg: ConfigModel, hz: float, out: TextIO, quiet: bool = False) -> Orchestrator:
    """Play *path* back through SnapshotUpdater timers until the capture ends."""
    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication(sys.argv[:1])
    updater = SnapshotUpdater(ReplayReader(path), update_hz=hz, session_poll_ms=cfg.session_poll_ms)
    orch = Orchestrator(updater, cfg=cfg)

    def on_event(event: RaceEvent) -> None:
        if event.kind == EventKind.DISCONNECTED:
            orch.stop()
            app.quit()
        elif not quiet and event.kind not in QUIET_KINDS:
            print(describe_event(event), file=out)

    def on_error(msg: str) -> None:
        # capture ended before any snapshot was delivered
        if not updater.is_connected:
            orch.stop()
            app.quit()

    orch.event_raised.connect(on_event)
    updater.error.connect(on_error)
    orch.start(hz)
    app.exec_()
    return orch


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="simtiming", description="Live race-state engine")
    parser.add_argument("--config", help="path to settings.ini")
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="replay a JSON-lines snapshot capture")
    replay.add_argument("path")
    replay.add_argument("--realtime", action="store_true", help="drive the replay with timers")
    replay.add_argument("--hz", type=float, default=None, help="telemetry rate for --realtime")
    replay.add_argument("--quiet", action="store_true", help="only print final standings")

    init = sub.add_parser("init-config", help="write a settings.ini with the current values")
    init.add_argument("path")
    return parser


def main(argv: Optional[List[str]] = None, out: TextIO = sys.stdout) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "init-config":
        Config.write_template(args.path)
        print(f"wrote {args.path}", file=out)
        return 0

    cfg = Config.load(args.config) if args.config else Config.current()
    configure_logging(cfg.log_level)
    log.info(f"Replaying {args.path}")

    if args.realtime:
        orch = replay_realtime(args.path, cfg, args.hz or cfg.update_hz, out, args.quiet)
    else:
        orch = replay_sync(args.path, cfg, out, args.quiet)

    for line in format_standings(orch):
        print(line, file=out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
