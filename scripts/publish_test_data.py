#!/usr/bin/env python3
"""Fire two canned rig messages at the broker and exit.

Sends ``{"battery": 25}`` to ``<prefix>/system`` and ``{"weight": 15250}``
to ``<prefix>/loadcell1`` so a running dashboard shows a low battery and a
15.250 kg raw weight.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from apissense import ApisSenseError, DashboardConfig  # noqa: E402
from apissense._tools.publisher import publish_test_data  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Publish canned apissense test messages.")
    parser.add_argument("--host", default=None, help="Broker host (default: APISSENSE_BROKER_HOST or localhost).")
    parser.add_argument("--port", type=int, default=1883, help="Broker TCP port.")
    parser.add_argument("--prefix", default=None, help="Topic prefix (default: apissense).")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    return parser.parse_args()


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.host:
        overrides["broker_host"] = args.host
    if args.prefix:
        overrides["topic_prefix"] = args.prefix

    try:
        config = DashboardConfig.from_env(**overrides)
        topics = publish_test_data(config, port=args.port)
    except ApisSenseError as exc:
        print(f"[publish] failed: {exc}", file=sys.stderr)
        return 2

    print(f"[publish] done ({len(topics)} messages)")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
