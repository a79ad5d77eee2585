"""
Create an admin account, or promote an existing user to admin.

Usage:
    DATABASE_URL=postgresql://... python scripts/create_admin.py --username admin --password s3cretpw --email admin@example.com
"""

import argparse
import getpass
import logging
import sys

from travel_backend.config import get_settings
from travel_backend.db import USERS
from travel_backend.dependencies import get_document_store
from travel_backend.errors import DuplicateKeyError
from travel_backend.query import Query
from travel_backend.routes.auth import MIN_PASSWORD_LENGTH
from travel_backend.security import Role, get_password_hash

logger = logging.getLogger(__name__)


def create_or_promote(store, username, password, email=None, name=None):
    """Returns (user, created)."""
    existing = store.find_one(USERS, Query(equals={"username": username}))
    if existing is None and email:
        existing = store.find_one(USERS, Query(equals={"email": email.lower()}))

    if existing is not None:
        changes = {"role": Role.ADMIN.value}
        if password:
            changes["password"] = get_password_hash(password)
        return store.update(USERS, existing["id"], changes), False

    doc = {
        "username": username,
        "password": get_password_hash(password),
        "role": Role.ADMIN.value,
    }
    if email:
        doc["email"] = email.lower()
    if name:
        doc["name"] = name
    return store.insert(USERS, doc), True


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create or promote an admin user.")
    parser.add_argument("--username", required=True)
    parser.add_argument("--password", help="Prompted for when omitted.")
    parser.add_argument("--email")
    parser.add_argument("--name")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        parser.error("DATABASE_URL must be set; an in-memory store would discard the admin")

    password = args.password or getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        parser.error(f"password must be at least {MIN_PASSWORD_LENGTH} characters")

    try:
        user, created = create_or_promote(
            get_document_store(), args.username, password, args.email, args.name
        )
    except DuplicateKeyError as exc:
        logger.error("Could not save admin: %s already in use", exc.field)
        return 1

    action = "Created" if created else "Promoted"
    logger.info("%s admin %s (%s)", action, user.get("username"), user["id"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
