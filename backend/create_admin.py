#!/usr/bin/env python3
"""
Provision an admin account out-of-band.

Public signup never grants the admin role, so the first HR account is created here:

    python backend/create_admin.py hr_lead hr@example.com

The password is read from ADMIN_PASSWORD or prompted for.
"""

import argparse
import getpass
import os
import sys
from pathlib import Path

# Allow `python backend/create_admin.py` from the repo root without installing.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi import HTTPException

from backend.app.config import get_settings
from backend.app.database import build_engine, build_session_factory, init_db
from backend.app.services.accounts import UserExistsError, create_user
from backend.app.utils.validation import validate_account_email


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an admin user.")
    parser.add_argument("username")
    parser.add_argument("email")
    args = parser.parse_args(argv)

    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Password: ")
    if not password:
        print("✗ Password is required")
        return 1

    settings = get_settings()
    engine = build_engine(settings.database_url)
    init_db(engine)
    SessionLocal = build_session_factory(engine)

    db = SessionLocal()
    try:
        email = validate_account_email(args.email)
        user = create_user(db, username=args.username.strip(), email=email, password=password, role="admin")
    except UserExistsError:
        print(f"✗ User {args.username!r} or email {args.email!r} already exists")
        return 1
    except HTTPException as e:
        print(f"✗ {e.detail}")
        return 1
    except ValueError as e:
        print(f"✗ {e}")
        return 1
    finally:
        db.close()
        engine.dispose()

    print(f"✓ Admin {user.username!r} created (id={user.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
