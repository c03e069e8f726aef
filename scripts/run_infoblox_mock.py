#!/usr/bin/env python3
"""Run the in-memory Infoblox WAPI mock for local connector development.

Usage:
    python scripts/run_infoblox_mock.py
    python scripts/run_infoblox_mock.py --port 3000 --username admin --password infoblox

Point the connector at it with:
    INFOBLOX_BASE_URL=http://localhost:3000/wapi/v2.13.1
    INFOBLOX_USERNAME=admin
    INFOBLOX_PASSWORD=infoblox
"""

from __future__ import annotations

import argparse
import os
import sys

# Ensure project root is on sys.path so we can import src.resolvers
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Infoblox WAPI mock server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", "3000")), help="Port (default: $PORT or 3000)")
    parser.add_argument("--username", default="admin", help="Basic auth user (default: admin)")
    parser.add_argument("--password", default="infoblox", help="Basic auth password (default: infoblox)")
    args = parser.parse_args()

    import uvicorn

    from src.resolvers.core.logging import configure_structlog
    from src.resolvers.infoblox.mockapi import WAPI_BASE, create_mock_app

    configure_structlog()
    app = create_mock_app(username=args.username, password=args.password)

    print(f"Infoblox mock server on http://{args.host}:{args.port}")
    print(f"  Health check: http://{args.host}:{args.port}/health")
    print(f"  WAPI endpoint: http://{args.host}:{args.port}{WAPI_BASE}")
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
