#!/usr/bin/env python3
"""
Create the credential table for the Drive Docs Assistant.
Reads DATABASE_URL from the environment or the project .env (see config/settings.py).
Pass --drop to start from an empty schema.
"""

import argparse
import os
import sys

# Make the project root importable when run as a script
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from infra.db.engine import drop_db_schema, init_db_schema  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args()

    if args.drop:
        drop_db_schema()
        print("Dropped existing tables.")
    init_db_schema()
    print("Database schema initialized/verified.")


if __name__ == "__main__":
    main()
