#!/usr/bin/env python3
"""
Escalation Sweep Script
Escalates reports that have stayed Pending past the threshold. Intended for
cron or any other interval scheduler.

Usage:
    python -m scripts.run_escalation_sweep [threshold_days]

Example:
    python -m scripts.run_escalation_sweep 7
"""
import logging
import sys
import os

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from app.config import ESCALATION_THRESHOLD_DAYS
from app.database import SessionLocal, init_db
from app.services.reports import EscalationSweeper, ReportEngineError

logger = logging.getLogger("escalation_sweep")


def run(threshold_days: int) -> int:
    """Run one sweep and return the number of reports escalated."""
    init_db()

    db: Session = SessionLocal()
    try:
        result = EscalationSweeper(db).run_sweep(threshold_days=threshold_days)
        print(f"Escalated {result['escalated']} report(s) pending >= {threshold_days} days")
        return result["escalated"]
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    threshold = ESCALATION_THRESHOLD_DAYS
    if len(sys.argv) > 1:
        try:
            threshold = int(sys.argv[1])
        except ValueError:
            print(f"Error: threshold_days must be an integer, got '{sys.argv[1]}'")
            sys.exit(1)

    try:
        run(threshold)
    except ReportEngineError as e:
        print(f"Error: {e}")
        sys.exit(1)
