#!/usr/bin/env python3
"""
Local development server for the courier webhook service.

Creates .env from .env.example on first run, then serves the app with
uvicorn. Point a tunnel (ngrok, cloudflared) at the printed webhook URLs
to receive real provider callbacks.

Usage:
    python run_local.py
    python run_local.py --port 8080 --reload
    python run_local.py --bypass-signatures  # unsigned test payloads
"""

import argparse
import os
import shutil
from pathlib import Path

import uvicorn

PROJECT_ROOT = Path(__file__).parent
PROVIDERS = ("doordash", "uber")


def ensure_env_file() -> None:
    env_file = PROJECT_ROOT / ".env"
    if env_file.exists():
        return
    shutil.copy(PROJECT_ROOT / ".env.example", env_file)
    print("Created .env from .env.example; fill in the provider secrets.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the courier webhook service locally")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Restart on source changes")
    parser.add_argument(
        "--bypass-signatures",
        action="store_true",
        help="Accept webhooks without valid signatures (dev stage only)"
    )
    return parser.parse_args()


def main():
    args = parse_args()
    ensure_env_file()

    if args.bypass_signatures:
        os.environ["WEBHOOK_VERIFICATION_BYPASS"] = "true"

    base_url = f"http://{args.host}:{args.port}"
    print(f"Docs:     {base_url}/docs")
    print(f"Records:  {base_url}/webhooks")
    for provider in PROVIDERS:
        print(f"{provider.title():<9} POST {base_url}/webhooks/{provider}")

    # Run from the project root so the .env file is found
    os.chdir(PROJECT_ROOT)
    uvicorn.run(
        "courier_webhooks.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        reload_dirs=[str(PROJECT_ROOT / "src")] if args.reload else None
    )


if __name__ == "__main__":
    main()
