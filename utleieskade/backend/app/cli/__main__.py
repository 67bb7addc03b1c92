# backend/app/cli/__main__.py
from __future__ import annotations

import argparse

from fastapi import HTTPException

from app.cli.seed import create_admin, init_platform


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m app.cli")
    sub = p.add_subparsers(dest="command", required=True)

    a = sub.add_parser("create-admin", help="bootstrap the first admin account")
    a.add_argument("--first-name", default="Admin")
    a.add_argument("--last-name", default="User")
    a.add_argument("--email", required=True)
    a.add_argument("--password", required=True)

    i = sub.add_parser("init-settings", help="create platform settings and default expertises")
    i.add_argument("--no-expertises", action="store_true")

    args = p.parse_args()

    if args.command == "create-admin":
        try:
            admin_id = create_admin(
                first_name=args.first_name,
                last_name=args.last_name,
                email=args.email,
                password=args.password,
            )
        except HTTPException as e:
            p.exit(1, f"{e.detail}\n")
        print({"ok": True, "admin_id": admin_id})
        return

    out = init_platform(with_expertises=not args.no_expertises)
    print({"ok": True, "settings_id": out.settings_id, "expertises_added": out.expertises_added})


if __name__ == "__main__":
    main()
