#!/usr/bin/env python3
"""Terminal monitor for the apissense telemetry pipeline.

Runs a dashboard session (broker or simulator, from ``APISSENSE_*`` env
vars or flags) and prints a one-line summary whenever the state changes.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from apissense import ApisSenseError, DashboardConfig, DashboardSession, StateDelta, TelemetrySnapshot  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print apissense telemetry as it arrives.")
    parser.add_argument("--simulate", action="store_true", help="Use the local simulator instead of the broker.")
    parser.add_argument("--host", default=None, help="Broker host.")
    parser.add_argument("--port", type=int, default=None, help="Broker port.")
    parser.add_argument("--tcp", action="store_true", help="Use plain TCP instead of websockets.")
    parser.add_argument("--duration", type=int, default=0, help="Maximum runtime in seconds (0 = until Ctrl+C).")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    return parser.parse_args()


def _format(snapshot: TelemetrySnapshot) -> str:
    system = snapshot.system
    volumes = " ".join(f"{v.name}={v.used_gb:.1f}/{v.total_gb:.0f}GB" for v in system.storage_volumes)
    return (
        f"bat={system.battery_percent:.0f}%{'+' if system.is_charging else ''} {volumes} | "
        f"net={snapshot.net_weight_kg:.3f}kg raw={snapshot.scale.raw_kg:.3f}kg | "
        f"in={snapshot.flow.count_in} out={snapshot.flow.count_out} net={snapshot.net_flow:+d} | "
        f"co2={snapshot.atmosphere.co2_ppm:.0f}ppm t={snapshot.atmosphere.temperature_c:.1f}C "
        f"h={snapshot.atmosphere.humidity_pct:.0f}% | "
        f"ext t={snapshot.external.temperature_c:.1f}C h={snapshot.external.humidity_pct:.0f}% | "
        f"voc={snapshot.voc.index:.0f} ({snapshot.voc.risk_tier})"
    )


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, Any] = {}
    if args.simulate:
        overrides["data_source"] = "simulator"
    if args.host:
        overrides["broker_host"] = args.host
    if args.port:
        overrides["broker_port"] = args.port
    if args.tcp:
        overrides["broker_transport"] = "tcp"

    try:
        config = DashboardConfig.from_env(**overrides)
    except ApisSenseError as exc:
        print(f"[monitor] invalid configuration: {exc}", file=sys.stderr)
        return 2

    stop = threading.Event()

    def stop_handler(_signum: int, _frame: Any) -> None:
        stop.set()

    signal.signal(signal.SIGINT, stop_handler)
    signal.signal(signal.SIGTERM, stop_handler)

    def render(snapshot: TelemetrySnapshot, delta: StateDelta) -> None:
        origin = delta.topic or delta.source
        print(f"[{origin}] {_format(snapshot)}")

    with DashboardSession(config) as session:
        session.add_listener(render)
        print(f"[monitor] {_format(session.snapshot())}")
        stop.wait(args.duration if args.duration > 0 else None)

    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
