#!/usr/bin/env -S uv run --script
#
# /// script
# requires-python = ">=3.11"
# dependencies = []
# ///
"""Run silkweb unit tests, then the snapshot integration tests.

The integration suite runs against a local Postgres when psql is on
PATH (the database is created on first use), otherwise against a
temporary SQLite file.

Usage:
    uv run scripts/test.py
    uv run scripts/test.py --unit-only
    uv run scripts/test.py --sqlite
"""
import argparse
import getpass
import os
import shutil
import subprocess
import sys

DB_NAME = "silkweb_test"


def run(cmd: list[str], **kwargs) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, **kwargs)


def ensure_db(user: str) -> str:
    """Create the test database if needed. Returns its asyncpg URL."""
    result = run(
        ["psql", "-U", user, "-d", "postgres", "-tAc",
         f"SELECT 1 FROM pg_database WHERE datname = '{DB_NAME}'"],
        capture_output=True, text=True,
    )
    if result.stdout.strip() != "1":
        run(["psql", "-U", user, "-d", "postgres", "-c", f"CREATE DATABASE {DB_NAME};"],
            capture_output=True, text=True)
        print(f"Created database '{DB_NAME}'")
    return f"postgresql+asyncpg://{user}@localhost:5432/{DB_NAME}"


def main():
    parser = argparse.ArgumentParser(description="silkweb test runner")
    parser.add_argument("--unit-only", action="store_true", help="Skip integration tests")
    parser.add_argument("--sqlite", action="store_true", help="Run integration tests on SQLite")
    args = parser.parse_args()

    print("=== silkweb test runner ===\n")

    print("── Unit tests ──")
    result = run(["uv", "run", "pytest", "tests/", "-v", "-k", "not integration"])
    if result.returncode != 0:
        sys.exit(result.returncode)

    if args.unit_only:
        print("\n=== Unit tests passed ===")
        sys.exit(0)

    env = dict(os.environ)
    if not args.sqlite and shutil.which("psql"):
        user = os.environ.get("PGUSER", getpass.getuser())
        env["SILKWEB_TEST_URL"] = ensure_db(user)
        print(f"\n── Integration tests ({env['SILKWEB_TEST_URL']}) ──")
    else:
        env.pop("SILKWEB_TEST_URL", None)
        print("\n── Integration tests (sqlite) ──")

    result = run(["uv", "run", "pytest", "tests/test_integration.py", "-v"], env=env)
    if result.returncode != 0:
        sys.exit(result.returncode)

    print("\n=== All tests passed ===")


if __name__ == "__main__":
    main()
