#!/usr/bin/env python
from __future__ import annotations

import argparse
import json

import anyio

from genoi.core.settings import get_settings
from genoi.db import Base
from genoi.db.session import SessionLocal, engine, database_url
from genoi.main import build_access_engine
from genoi.services.allowlist import AllowListService

settings = get_settings()


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    print(f"Database ready at {database_url}")


def list_ips(active_only: bool) -> None:
    with SessionLocal() as session:
        entries = AllowListService(session).list_entries(active_only=active_only)
    if not entries:
        print("No allowed IPs configured")
        return
    for entry in entries:
        status = "active" if entry.active else "inactive"
        print(f"{entry.id}\t{entry.ip}\t{entry.type}\t{status}\t{entry.description or ''}")


def add_ip(ip: str, description: str | None, added_by: str) -> None:
    with SessionLocal() as session:
        entry = AllowListService(session).add_entry(ip, description, added_by)
    print(f"Added {entry.ip} ({entry.type}) with id {entry.id}")


def remove_ip(entry_id: int) -> None:
    with SessionLocal() as session:
        AllowListService(session).remove_entry(entry_id)
    print(f"Removed allowed IP {entry_id}")


def set_public_access(state: str, actor: str, reason: str | None) -> None:
    enabled = state == "on"
    with SessionLocal() as session:
        config = AllowListService(session).update_public_access(enabled, actor, reason)
    print(f"Public access {'enabled' if config.enabled else 'disabled'} by {config.enabled_by}")


def check(ip: str, headers: list[str]) -> None:
    header_map: dict[str, str] = {}
    for item in headers:
        name, sep, value = item.partition(":")
        if not sep:
            raise SystemExit(f"Invalid header '{item}', expected name:value")
        header_map[name.strip()] = value.strip()

    access_engine = build_access_engine(settings)
    decision = anyio.run(access_engine.evaluate, header_map, ip or None)
    print(
        json.dumps(
            {
                "allowed": decision.allowed,
                "reason": decision.reason.value,
                "clientIP": decision.primary_address,
                "allDetectedIPs": decision.all_addresses,
                "matchedIP": decision.matched_ip,
            },
            ensure_ascii=False,
            indent=2,
        )
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Gen.OI access gateway management")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables")

    list_parser = sub.add_parser("list-ips", help="List allowed IPs")
    list_parser.add_argument("--active-only", action="store_true")

    add_parser = sub.add_parser("add-ip", help="Add an allowed IP or CIDR range")
    add_parser.add_argument("ip")
    add_parser.add_argument("--description")
    add_parser.add_argument("--added-by", default="cli")

    remove_parser = sub.add_parser("remove-ip", help="Remove an allowed IP by id")
    remove_parser.add_argument("entry_id", type=int)

    public_parser = sub.add_parser("public-access", help="Toggle public access")
    public_parser.add_argument("state", choices=["on", "off"])
    public_parser.add_argument("--by", default="cli")
    public_parser.add_argument("--reason")

    check_parser = sub.add_parser("check", help="Evaluate an access decision")
    check_parser.add_argument("ip", nargs="?", default="")
    check_parser.add_argument("--header", action="append", default=[], help="name:value")

    args = parser.parse_args()

    try:
        if args.command == "init-db":
            init_db()
        elif args.command == "list-ips":
            list_ips(args.active_only)
        elif args.command == "add-ip":
            add_ip(args.ip, args.description, args.added_by)
        elif args.command == "remove-ip":
            remove_ip(args.entry_id)
        elif args.command == "public-access":
            set_public_access(args.state, args.by, args.reason)
        elif args.command == "check":
            check(args.ip, args.header)
    except ValueError as exc:
        raise SystemExit(f"error: {exc}") from exc


if __name__ == "__main__":
    main()
