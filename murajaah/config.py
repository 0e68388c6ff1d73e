"""
Environment configuration.

Values come from the process environment, optionally seeded from a .env
file in the working directory.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load environment
load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///logs/murajaah.db"
PROD_DB_NAME = "murajaah"
TEST_DB_NAME = "test_murajaah"


def is_test_mode() -> bool:
    """Check if running in test mode."""
    return os.getenv("TEST_MODE", "false").lower() == "true"


def get_database_url() -> str:
    """
    Get the database URL from environment variables.

    Falls back to a local SQLite file. In test mode the production database
    name inside the URL is swapped for the test database name.

    Returns:
        SQLAlchemy database URL
    """
    url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    if is_test_mode():
        return url.replace(PROD_DB_NAME, TEST_DB_NAME)
    return url


def get_default_profile_id() -> str:
    """Get default learner profile id for scoping settings."""
    return os.getenv("DEFAULT_PROFILE_ID", "default")


def get_mongo_uri() -> str:
    mongo_uri = os.getenv("MONGO_URI")
    if not mongo_uri:
        raise ValueError("MONGO_URI not found in environment variables")
    return mongo_uri


def get_mongo_db_name() -> str:
    return os.getenv("MONGO_DB_NAME", "murajaah_content")


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
