#!/usr/bin/env python3
"""
fbads command line interface.

Usage
-----
  fbads [--access-token TOKEN] [--account-id ID] [--json] <command> ...

Commands
--------
  create     NAME [--description TEXT] [--opt-out-link URL]
  read       AUDIENCE_ID [--fields id,name,...]
  delete     AUDIENCE_ID
  share      AUDIENCE_ID ACCOUNT_ID [ACCOUNT_ID ...]
  add-users  AUDIENCE_ID {EMAIL,PHONE} FILE   (one identifier per line, '-' for stdin)
  lookalike  NAME ORIGIN_AUDIENCE_ID [--ratio 0.01] [--country US]

Token and account id default to FBADS_ACCESS_TOKEN / FBADS_ACCOUNT_ID.

Exit Codes
----------
0 - success
1 - validation, account or Graph API error
2 - interrupted
"""
from __future__ import annotations

import argparse
import json
import sys
from typing import Any, List, Optional, TextIO

from fbads import config
from fbads.services import account_service, audience_service
from fbads.services.account_service import AccountError
from fbads.services.audience_service import AudienceValidationError
from fbads.services.graph_api import GraphAPIError


def parse_args(argv: List[str]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="fbads", description=config.APP_DESCRIPTION)
    ap.add_argument("--access-token", help="Graph API access token (overrides FBADS_ACCESS_TOKEN)")
    ap.add_argument("--account-id", help="Ad account id, with or without act_ (overrides FBADS_ACCOUNT_ID)")
    ap.add_argument("--json", action="store_true", help="Print full JSON results")
    ap.add_argument("--version", action="version", version="%(prog)s " + config.metadata()["version"])
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("create", help="Create a custom audience")
    p.add_argument("name")
    p.add_argument("--description")
    p.add_argument("--opt-out-link")

    p = sub.add_parser("read", help="Read custom audience metadata")
    p.add_argument("audience_id")
    p.add_argument("--fields", help="Comma separated subset of: " + ",".join(audience_service.DEFAULT_FIELDS))

    p = sub.add_parser("delete", help="Delete a custom audience")
    p.add_argument("audience_id")

    p = sub.add_parser("share", help="Share a custom audience with other ad accounts")
    p.add_argument("audience_id")
    p.add_argument("adaccounts", nargs="+")

    p = sub.add_parser("add-users", help="Hash and upload e-mail addresses or phone numbers")
    p.add_argument("audience_id")
    p.add_argument("schema", type=str.upper, choices=["EMAIL", "PHONE"])
    p.add_argument("file", help="File with one identifier per line, '-' for stdin")

    p = sub.add_parser("lookalike", help="Create a lookalike audience")
    p.add_argument("name")
    p.add_argument("origin_audience_id")
    p.add_argument("--ratio", type=float, default=0.01)
    p.add_argument("--country", default="US")
    return ap.parse_args(argv)


def read_identifiers(stream: TextIO) -> List[str]:
    return [line.strip() for line in stream if line.strip()]


def _load_identifiers(path: str) -> List[str]:
    if path == "-":
        return read_identifiers(sys.stdin)
    with open(path, "r", encoding="utf-8") as fh:
        return read_identifiers(fh)


def run(args: argparse.Namespace) -> Any:
    account = account_service.init_account(args.access_token, args.account_id, verify=False)
    if args.command == "create":
        return audience_service.create_audience(
            account, args.name, description=args.description, opt_out_link=args.opt_out_link
        )
    if args.command == "read":
        fields = (
            [f.strip() for f in args.fields.split(",") if f.strip()]
            if args.fields
            else audience_service.DEFAULT_FIELDS
        )
        return audience_service.read_audience(account, args.audience_id, fields)
    if args.command == "delete":
        return audience_service.delete_audience(account, args.audience_id)
    if args.command == "share":
        return audience_service.share_audience(account, args.audience_id, args.adaccounts)
    if args.command == "add-users":
        identifiers = _load_identifiers(args.file)
        return audience_service.add_audience_users(account, args.audience_id, args.schema, identifiers)
    if args.command == "lookalike":
        return audience_service.create_lookalike_audience(
            account, args.name, args.origin_audience_id, ratio=args.ratio, country=args.country
        )
    raise ValueError(f"unknown command: {args.command}")  # pragma: no cover - argparse guards


def render(result: Any, as_json: bool) -> str:
    if as_json or not isinstance(result, (str, int)):
        return json.dumps(result, indent=2, sort_keys=True)
    return str(result)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        result = run(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 2
    except (AccountError, AudienceValidationError, GraphAPIError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    print(render(result, args.json))
    return 0


if __name__ == "__main__":
    sys.exit(main())
