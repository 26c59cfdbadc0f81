#!/usr/bin/env python3
"""Print a bcrypt hash suitable for ADMIN_PASSWORD_HASH."""

from __future__ import annotations

import argparse
import getpass
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from auth import get_password_hash, verify_password


def main() -> int:
    parser = argparse.ArgumentParser(description="Hash the admin dashboard password")
    parser.add_argument("--password", help="Password to hash (prompted when omitted)")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Admin password: ")
    if not password:
        print("Password must not be empty", file=sys.stderr)
        return 1
    hashed = get_password_hash(password)
    if not verify_password(password, hashed):
        print("Hash verification failed", file=sys.stderr)
        return 1
    print(hashed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
