#!/usr/bin/env python3
"""Insert mock registrations for exercising the admin dashboard.

Mock rows carry the MOCKREG_ marker in the name; --cleanup removes only those.
"""

from __future__ import annotations

import argparse
import random
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from database import Base, SessionLocal, engine
from models import Registration
from registration_store import NewRegistration, RegistrationStore
from time_utils import now_millis

MOCK_MARKER = "MOCKREG_"
MOCK_CITIES = ["Guwahati", "Dibrugarh", "Jorhat", "Tezpur", "Silchar", "Nagaon"]


def _mock_registration(index: int) -> NewRegistration:
    return NewRegistration(
        name=f"{MOCK_MARKER}Participant {index:03d}",
        age=str(random.randint(6, 40)),
        gender=random.choice(["male", "female", "other"]),
        address=f"{random.randint(1, 200)} Main Road, {random.choice(MOCK_CITIES)}",
        mobile=f"9{random.randint(0, 999999999):09d}",
        phone_verified=True,
    )


def seed(count: int) -> int:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    base_ms = now_millis()
    try:
        for index in range(count):
            # One millisecond apart so creation order matches insertion order.
            store = RegistrationStore(db, clock=lambda offset=index: base_ms + offset)
            store.append(_mock_registration(index + 1))
    finally:
        db.close()
    return count


def cleanup(dry_run: bool) -> int:
    db = SessionLocal()
    try:
        query = db.query(Registration).filter(Registration.name.like(f"{MOCK_MARKER}%"))
        total = query.count()
        if not dry_run:
            query.delete(synchronize_session=False)
            db.commit()
        return total
    finally:
        db.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed or remove MOCKREG_ registrations")
    parser.add_argument("--count", type=int, default=150, help="Number of registrations to insert")
    parser.add_argument("--cleanup", action="store_true", help="Delete MOCKREG_ registrations instead of seeding")
    parser.add_argument("--dry-run", action="store_true", help="With --cleanup, only report how many rows match")
    args = parser.parse_args()

    if args.cleanup:
        removed = cleanup(args.dry_run)
        verb = "Would delete" if args.dry_run else "Deleted"
        print(f"{verb} {removed} mock registrations")
        return 0

    inserted = seed(args.count)
    print(f"Inserted {inserted} mock registrations")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
