#!/usr/bin/env python3
"""Finalize workspaces whose retention period has elapsed.

Moves every WINDING_DOWN workspace whose scheduled dissolution time has
passed to DISSOLVED. Safe to run repeatedly; run it from cron or a queue
worker.

Usage:
    python scripts/process_dissolutions.py
    python scripts/process_dissolutions.py --now 2026-03-01T00:00:00
"""

import argparse
import os
import sys
from datetime import datetime

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from api.services import build_services
from collab.config import LOG_FORMAT, LOG_LEVEL
from collab.db.engine import get_session
from collab.logging.structured import configure_structlog


def process_dissolutions(now: datetime | None = None) -> list:
    """Run one pass of the dissolution job."""
    services = build_services()
    with get_session() as session:
        return services.lifecycle.process_scheduled_dissolutions(session, now=now)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Finalize scheduled workspace dissolutions")
    parser.add_argument(
        "--now",
        type=datetime.fromisoformat,
        default=None,
        help="Treat this ISO timestamp as the current time (naive means UTC)",
    )
    args = parser.parse_args(argv)

    configure_structlog(json_format=LOG_FORMAT == "json", log_level=LOG_LEVEL)
    dissolved = process_dissolutions(args.now)
    print(f"Dissolved {len(dissolved)} workspace(s)")
    for workspace_id in dissolved:
        print(f"  {workspace_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
