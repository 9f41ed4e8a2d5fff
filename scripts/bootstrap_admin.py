#!/usr/bin/env python3
"""Emit deterministic SQL that grants or revokes the Jobly administrator flag."""

from __future__ import annotations

import argparse


def _quote_sql(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def render_sql(*, username: str, revoke: bool) -> str:
    flag = "false" if revoke else "true"
    action = "revoke" if revoke else "grant"

    return f"""-- Jobly administrator {action} SQL
-- Run this in a privileged Postgres session against the Jobly database.

update users
set is_admin = {flag}
where username = {_quote_sql(username)};
"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to grant or revoke Jobly administrator privileges.")
    parser.add_argument("--username", required=True, help="users.username to update")
    parser.add_argument(
        "--revoke",
        action="store_true",
        help="Clear the administrator flag instead of setting it",
    )
    args = parser.parse_args()

    print(render_sql(username=args.username, revoke=args.revoke))


if __name__ == "__main__":
    main()
