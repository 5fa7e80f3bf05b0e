"""Provision the database: create tables and seed the baseline rows.

Usage: python scripts/setup_db.py   (exit status 0 on success, 1 on failure)
"""
import os
import sys

from dotenv import load_dotenv

def main():
    base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
    load_dotenv(os.path.join(base_dir, '.env'))

    # settings are read at import time, so import after the .env is loaded
    from dashboard.logging_setup import setup_logging
    from dashboard.services.seed import run_setup

    setup_logging()
    sys.exit(run_setup())

if __name__ == "__main__":
    main()
