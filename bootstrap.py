"""
Create the first super admin if the database has none.

    python bootstrap.py

Reads SUPERADMIN_NAME, SUPERADMIN_EMAIL and SUPERADMIN_PASSWORD from the
environment. Running it again is a no-op.
"""

import logging
import sys
from typing import Any, Dict, Optional

import config
import database
from auth import ROLE_SUPERADMIN, hash_password
from database import create_document, parse_object_id

logger = logging.getLogger(__name__)


def ensure_super_admin(db, email: str, password: str, name: str = "Super Admin") -> Optional[Dict[str, Any]]:
    if db["user"].find_one({"role": ROLE_SUPERADMIN}):
        logger.info("A super admin already exists, nothing to do")
        return None
    record = {
        "name": name,
        "email": email,
        "password_hash": hash_password(password),
        "role": ROLE_SUPERADMIN,
        "active": True,
        "last_login": None,
    }
    user_id = create_document(db, "user", record)
    logger.info("Super admin created: %s", email)
    return db["user"].find_one({"_id": parse_object_id(user_id)})


def main() -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    try:
        db = database.connect()
    except Exception as e:
        logger.error("Error: %s", e)
        return 1
    try:
        created = ensure_super_admin(db, config.SUPERADMIN_EMAIL, config.SUPERADMIN_PASSWORD, config.SUPERADMIN_NAME)
        if created:
            logger.warning("Please change the super admin password after first login!")
    finally:
        database.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
