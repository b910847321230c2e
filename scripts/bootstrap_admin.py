#!/usr/bin/env python3
"""Emit deterministic SQL that seeds or promotes a Jobly admin user."""

from __future__ import annotations

import argparse

import bcrypt


def _quote_sql(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def render_sql(
    *,
    username: str,
    password_hash: str | None = None,
    first_name: str = "Admin",
    last_name: str = "User",
    email: str | None = None,
) -> str:
    username_value = _quote_sql(username)

    if password_hash is None:
        return f"""-- Jobly admin bootstrap SQL
-- Promotes an existing user; run against the Jobly database.

update users
set is_admin = true
where username = {username_value};
"""

    email_value = _quote_sql(email or f"{username}@example.com")
    return f"""-- Jobly admin bootstrap SQL
-- Creates the user when missing, otherwise promotes it and resets its password.

insert into users (username, password, first_name, last_name, email, is_admin)
values ({username_value}, {_quote_sql(password_hash)}, {_quote_sql(first_name)}, {_quote_sql(last_name)}, {email_value}, true)
on conflict (username) do update
set is_admin = true,
    password = excluded.password;
"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to bootstrap a Jobly admin user.")
    parser.add_argument("--username", required=True, help="users.username to create or promote")
    parser.add_argument("--password", help="Plain password; when set the user is created if missing")
    parser.add_argument("--first-name", default="Admin")
    parser.add_argument("--last-name", default="User")
    parser.add_argument("--email", help="Email for a newly created user")
    parser.add_argument("--rounds", type=int, default=12, help="bcrypt cost factor")
    args = parser.parse_args()

    password_hash = None
    if args.password:
        password_hash = bcrypt.hashpw(args.password.encode("utf-8"), bcrypt.gensalt(rounds=args.rounds)).decode("utf-8")

    print(
        render_sql(
            username=args.username,
            password_hash=password_hash,
            first_name=args.first_name,
            last_name=args.last_name,
            email=args.email,
        )
    )


if __name__ == "__main__":
    main()
