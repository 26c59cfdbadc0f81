#!/usr/bin/env python3
"""Purge OTP challenges and admin session markers that are no longer useful.

Safety rules:
- Challenges are removed only once expired, consumed or locked by wrong codes.
- Admin markers are removed only with --admin-sessions; every admin is logged out.
"""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
from typing import Dict
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from admin_session import clear_session_markers
from config import get_settings
from database import SessionLocal
from phone_verification import purge_stale_challenges


def cleanup_db(dry_run: bool, admin_sessions: bool) -> Dict[str, int]:
    settings = get_settings()
    db = SessionLocal()
    counts: Dict[str, int] = {"phone_challenges": 0, "admin_session_markers": 0}
    try:
        counts["phone_challenges"] = purge_stale_challenges(
            db, datetime.now(timezone.utc), settings.otp_max_attempts
        ) or 0
        if admin_sessions:
            counts["admin_session_markers"] = clear_session_markers(db)

        if dry_run:
            db.rollback()
        else:
            db.commit()
        return counts
    finally:
        db.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Purge stale OTP challenges and admin session markers")
    parser.add_argument("--admin-sessions", action="store_true", help="Also delete all admin session markers")
    parser.add_argument("--dry-run", action="store_true", help="Print potential deletions without committing")
    args = parser.parse_args()

    counts = cleanup_db(dry_run=args.dry_run, admin_sessions=args.admin_sessions)

    print("Stale record cleanup summary")
    for key, value in counts.items():
        print(f"- {key}: {value}")
    print(f"- mode: {'dry-run' if args.dry_run else 'apply'}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
