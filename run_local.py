#!/usr/bin/env python3
"""
Local development runner.

Runs either the FastAPI application with uvicorn, or the scheduler loop
that sweeps triggers once per poll interval.

Usage:
    python run_local.py                  # API on 127.0.0.1:8000
    python run_local.py --port 8000 --reload
    python run_local.py loop             # periodic sweeps
    python run_local.py loop --interval 60 --sweeps 1
"""

import argparse
import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).parent


def run_api(args) -> None:
    try:
        import uvicorn
    except ImportError:
        print("ERROR: uvicorn is not installed.")
        print("Please install dependencies: pip install -e '.[dev]'")
        sys.exit(1)

    print("=" * 60)
    print("Starting Trigger Relay (Local Development)")
    print("=" * 60)
    print(f"Server: http://{args.host}:{args.port}")
    print(f"API Docs: http://{args.host}:{args.port}/docs")
    print(f"Health: http://{args.host}:{args.port}/health")
    print(f"Sweep: http://{args.host}:{args.port}/cron/process-triggers")
    print("=" * 60)
    if args.reload:
        print("Auto-reload: ENABLED (code changes will restart server)")
    print()

    # Stay in project root so the .env file loads correctly
    uvicorn.run(
        "trigger_relay.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
        reload_dirs=[str(project_root / "src")] if args.reload else None
    )


def run_loop(args) -> None:
    from trigger_relay.worker import run_forever

    print(f"Starting scheduler loop (interval: {args.interval or 'poll interval'}s)")
    try:
        asyncio.run(run_forever(interval_seconds=args.interval, max_sweeps=args.sweeps))
    except KeyboardInterrupt:
        print("Stopped.")


def main():
    parser = argparse.ArgumentParser(description="Run Trigger Relay locally")
    parser.add_argument(
        "mode",
        nargs="?",
        default="api",
        choices=["api", "loop"],
        help="Run the HTTP API (default) or the scheduler loop"
    )
    parser.add_argument("--port", type=int, default=8000, help="Port to run the server on (default: 8000)")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload on code changes")
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level for uvicorn (default: info)"
    )
    parser.add_argument("--interval", type=int, default=None, help="Seconds between sweeps (loop mode)")
    parser.add_argument("--sweeps", type=int, default=None, help="Stop after this many sweeps (loop mode)")

    args = parser.parse_args()

    if not (project_root / ".env").exists():
        print("NOTE: .env file not found, using environment variables and defaults.")

    if args.mode == "loop":
        run_loop(args)
    else:
        run_api(args)


if __name__ == "__main__":
    main()
