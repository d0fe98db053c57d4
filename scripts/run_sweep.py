#!/usr/bin/env python3
"""
One-off script to complete events that have already taken place.

Runs the same sweep as the background scheduler, for use from cron or when
the web application is not running.

Usage:
    python scripts/run_sweep.py [--dry-run]

Options:
    --dry-run    Show which events would be completed without making changes
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session

from event_planner.core.config import settings
from event_planner.core.database import create_db_and_tables, engine
from event_planner.core.timeutil import utc_now
from event_planner.planning.sweeper import due_for_completion, sweep_completions


def main(dry_run: bool = False):
    """List events past their completion grace period and complete them."""
    create_db_and_tables()
    now = utc_now()

    with Session(engine) as session:
        due = due_for_completion(session, now)

        if not due:
            print("No events to complete.")
            return

        print(f"Found {len(due)} event(s) more than {settings.completion_grace_hours:g}h past their start:\n")
        for event in due:
            print(f"  {event.id}  {event.starts_at:%Y-%m-%d %H:%M} UTC  {event.display_title} @ {event.location}")
        print()

        if dry_run:
            print("--- DRY RUN: No changes made ---")
            return

        result = sweep_completions(session, now=now)
        print(f"Complete: {result.completed} completed, {result.failed} failed")


if __name__ == "__main__":
    dry_run = "--dry-run" in sys.argv
    main(dry_run=dry_run)
