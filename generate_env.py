#!/usr/bin/env python3
"""
Writes the .env file read by app.py: a random SECRET_KEY, the database
location and the stock ledger settings.

Usage:
    python generate_env.py                          # asks before replacing an existing .env
    python generate_env.py --force                  # replace without asking (old file is backed up)
    python generate_env.py --dev                    # fixed key, debug logging
    python generate_env.py --database-url URL       # any SQLAlchemy URL instead of the SQLite file
"""

import argparse
import os
import secrets
import shutil
import sys
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).parent
DEV_SECRET_KEY = "dev-secret-key-DO-NOT-USE-IN-PRODUCTION"


def default_database_url():
    return f"sqlite:///{(ROOT / 'instance' / 'wholesale_pos.db').resolve()}"


def build_sections(dev_mode, database_url, enforce_floor):
    """(title, [(key, value, comment)]) blocks in file order"""
    return [
        ("Flask", [
            ("SECRET_KEY", DEV_SECRET_KEY if dev_mode else secrets.token_hex(64), None),
            ("FLASK_DEBUG", dev_mode, None),
            ("USE_RELOADER", False, None),
            ("FLASK_HOST", "127.0.0.1", None),
            ("FLASK_PORT", 5000, None),
        ]),
        ("Database", [
            ("DATABASE_URL", database_url, "SQLite by default; any SQLAlchemy URL works"),
        ]),
        ("Stock ledger", [
            ("LEDGER_MAX_RETRIES", 3, "attempts after the first when the database reports a lock"),
            ("LEDGER_RETRY_DELAY", 0.05, "seconds, multiplied by the attempt number"),
            ("ENFORCE_STOCK_FLOOR", enforce_floor, "refuse sales and withdrawals that would go below zero"),
            ("SALE_NUMBER_PREFIX", "VEN", None),
        ]),
        ("Rate limiting", [
            ("RATELIMIT_ENABLED", True, None),
            ("RATELIMIT_DEFAULT", "2000 per day;500 per hour", None),
        ]),
        ("Logging", [
            ("LOG_LEVEL", "DEBUG" if dev_mode else "INFO", "DEBUG, INFO, WARNING, ERROR or CRITICAL"),
            ("LOG_DIR", "logs", None),
        ]),
    ]


def render(sections):
    lines = [
        "# Wholesale POS environment configuration",
        f"# Generated: {datetime.now():%Y-%m-%d %H:%M:%S}",
        "# Keep this file out of version control.",
    ]
    for title, entries in sections:
        lines.extend(["", f"# {title}"])
        for key, value, comment in entries:
            if comment:
                lines.append(f"# {comment}")
            lines.append(f"{key}={value}")
    return "\n".join(lines) + "\n"


def backup(env_file):
    target = env_file.with_name(f".env.backup.{datetime.now():%Y-%m-%d_%H-%M-%S}")
    shutil.copy2(env_file, target)
    return target


def write_env(env_file, content):
    env_file.write_text(content, encoding="utf-8")
    os.chmod(env_file, 0o600)


def main():
    parser = argparse.ArgumentParser(description="Generate the .env configuration for the wholesale point of sale")
    parser.add_argument("--force", "-f", action="store_true", help="replace an existing .env without asking")
    parser.add_argument("--dev", "-d", action="store_true", help="development values (NOT FOR PRODUCTION)")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy database URL")
    parser.add_argument("--allow-negative-stock", action="store_true",
                        help="write ENFORCE_STOCK_FLOOR=False")
    args = parser.parse_args()

    env_file = ROOT / ".env"
    if env_file.exists():
        if not args.force:
            answer = input(f"{env_file} already exists. Overwrite it? (yes/no): ").strip().lower()
            if answer not in ("yes", "y"):
                print("Aborted, .env left unchanged.")
                sys.exit(1)
        print(f"Backup: {backup(env_file)}")

    database_url = args.database_url or default_database_url()
    write_env(env_file, render(build_sections(args.dev, database_url, not args.allow_negative_stock)))

    print(f"Created: {env_file}")
    print(f"Database: {database_url}")
    print("Next: python app.py --build-only  (create tables and default units)")
    if args.dev:
        print("DEV MODE: predictable secret key, do not use in production!")


if __name__ == "__main__":
    main()
