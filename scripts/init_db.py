"""Initialize the database: tables, seed class types and an optional admin.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --admin-email owner@kraftuniverse.com --admin-password 'S3cret!pass'
"""
import argparse
import sys
import os

# project root on sys.path when run as a script
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import DatabaseManager
from config.business_config import business_config
from auth.passwords import hash_password
from errors import ConflictError
from loguru import logger


def init_database(database_url=None, admin_email=None, admin_password=None,
                  admin_name="Administrator"):
    """Create tables and insert seed data.

    Returns:
        DatabaseManager: The initialized manager (caller closes it).
    """
    logger.info("Initializing database...")
    db = DatabaseManager(database_url)

    logger.info("Creating tables...")
    db.create_tables()

    logger.info("Inserting seed data...")
    for class_type in business_config.get_class_types():
        db.class_types.get_or_create(
            name=class_type["name"],
            cost_per_person=class_type.get("cost_per_person"),
        )
        logger.info(f"Class type ready: {class_type['name']}")

    if admin_email and admin_password:
        try:
            db.create_profile(
                email=admin_email, password_hash=hash_password(admin_password),
                full_name=admin_name, role="admin",
            )
            logger.info(f"Admin profile created: {admin_email}")
        except ConflictError:
            logger.info(f"Admin profile already exists: {admin_email}")

    logger.info("Database initialization completed!")
    return db


def main():
    parser = argparse.ArgumentParser(description="Initialize the Workshop Tracker database")
    parser.add_argument("--db", default=None, help="database URL (default: DATABASE_URL)")
    parser.add_argument("--admin-email", default=None, help="create an admin profile")
    parser.add_argument("--admin-password", default=None, help="admin password")
    parser.add_argument("--admin-name", default="Administrator", help="admin full name")
    args = parser.parse_args()

    db = init_database(args.db, args.admin_email, args.admin_password, args.admin_name)
    db.close()


if __name__ == "__main__":
    main()
