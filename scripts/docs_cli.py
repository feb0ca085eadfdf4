#!/usr/bin/env python3
"""
A tiny CLI to poke at a locally running Drive Docs Assistant.

Usage examples:
  python scripts/docs_cli.py connections
  python scripts/docs_cli.py connect
  python scripts/docs_cli.py documents --query "quarterly plan"
  python scripts/docs_cli.py chat "What did we decide about the launch date?"

Notes:
- Calls the FastAPI server at DOCS_API_BASE (default http://localhost:8000).
- Requests are authenticated with the session cookie of a signed-in browser; pass it with
  --session or the DOCS_SESSION_COOKIE environment variable.
"""
from __future__ import annotations

import argparse
import json
import os
import sys
import requests

API_BASE = os.getenv("DOCS_API_BASE", "http://localhost:8000")


def _session(args: argparse.Namespace) -> requests.Session:
    s = requests.Session()
    cookie = args.session or os.getenv("DOCS_SESSION_COOKIE")
    if cookie:
        s.cookies.set("session", cookie)
    return s


def cmd_connect(args: argparse.Namespace) -> int:
    r = _session(args).get(f"{API_BASE}/auth/google/connect", allow_redirects=False, timeout=15)
    if r.status_code not in (302, 307):
        r.raise_for_status()
    print(r.headers["location"])  # the consent URL to open in a browser
    return 0


def cmd_connections(args: argparse.Namespace) -> int:
    r = _session(args).get(f"{API_BASE}/api/user/connections", timeout=15)
    r.raise_for_status()
    print(json.dumps(r.json(), indent=2))
    return 0


def cmd_documents(args: argparse.Namespace) -> int:
    params = {"query": args.query} if args.query else {}
    r = _session(args).get(f"{API_BASE}/api/documents", params=params, timeout=300)
    r.raise_for_status()
    for doc in r.json()["documents"]:
        preview = doc["content"][: args.preview].replace("\n", " ")
        print(f"{doc['name']}  ({doc.get('lastModified') or '-'})\n  {preview}")
    return 0


def cmd_chat(args: argparse.Namespace) -> int:
    r = _session(args).post(f"{API_BASE}/api/chat", json={"message": args.message}, timeout=300)
    r.raise_for_status()
    data = r.json()
    print(data["response"])
    if data.get("documents"):
        print("\nSources: " + ", ".join(d["name"] for d in data["documents"]))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(prog="docs")
    parser.add_argument("--session", default=None, help="session cookie value")
    sub = parser.add_subparsers(dest="cmd")

    p_connect = sub.add_parser("connect")
    p_connect.set_defaults(func=cmd_connect)

    p_conn = sub.add_parser("connections")
    p_conn.set_defaults(func=cmd_connections)

    p_docs = sub.add_parser("documents")
    p_docs.add_argument("--query", default=None)
    p_docs.add_argument("--preview", type=int, default=120)
    p_docs.set_defaults(func=cmd_documents)

    p_chat = sub.add_parser("chat")
    p_chat.add_argument("message")
    p_chat.set_defaults(func=cmd_chat)

    args = parser.parse_args()
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    try:
        return args.func(args)
    except requests.HTTPError as e:
        print(f"HTTP error: {e}\n{e.response.text if e.response is not None else ''}", file=sys.stderr)
        return 3


if __name__ == "__main__":
    raise SystemExit(main())
