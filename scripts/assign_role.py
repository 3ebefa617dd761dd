#!/usr/bin/env python3
"""
Assign a role to a user by email.

    python -m scripts.assign_role --email admin@example.com --role admin
    python -m scripts.assign_role --email new@example.com --role staff --create --password secret

Uses the same database settings as the app (DATABASE_URL or [vehicle_db]).
"""
import argparse
import logging
from typing import List, Optional

from database import SessionLocal, init_db
from models import UserRole
from utils.auth_utils import create_user, get_user_by_email, set_user_role

logger = logging.getLogger("assign_role")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Assign a role (admin or staff) to a user.")
    parser.add_argument("--email", required=True, help="Email the user signs in with")
    parser.add_argument("--role", required=True, choices=[UserRole.ADMIN, UserRole.STAFF])
    parser.add_argument("--create", action="store_true", help="Create the user if it does not exist")
    parser.add_argument("--password", help="Password for a user created with --create")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    init_db()

    with SessionLocal() as db:
        if get_user_by_email(db, args.email) is None:
            if not args.create:
                raise SystemExit(f"User with email {args.email} not found")
            if not args.password:
                raise SystemExit("--password is required with --create")
            create_user(db, args.email, args.password, args.role)
            logger.info("Created %s with role %s", args.email, args.role)
            return

        set_user_role(db, args.email, args.role)
        logger.info('Assigned role "%s" to %s', args.role, args.email)


if __name__ == "__main__":
    main()
