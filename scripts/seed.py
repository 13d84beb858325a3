#!/usr/bin/env python3
"""
Minimal seed:
- Ensures demo departments, incident categories and an admin user exist.
- Safe to run multiple times (idempotent).
"""
import logging

from dotenv import load_dotenv

from irms.core.config import Settings
from irms.db.seed import seed_all
from irms.db.session import Database


def main():
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    settings = Settings()

    database = Database(settings.database_url)
    if settings.enable_create_all:
        database.create_all()

    db = database.SessionLocal()
    try:
        u = seed_all(
            db,
            settings.seed_admin_email,
            settings.seed_admin_password,
            rounds=settings.bcrypt_rounds,
        )
        print(f"OK: admin ensured -> {u.email} (id={u.id})")
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    main()
