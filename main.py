#!/usr/bin/env python3
"""
Voice Interview - Main Entry Point.

Usage:
    python main.py                  # Run the FastAPI server
    python main.py --port 9000      # Bind a different port
    python main.py --debug          # Verbose logging
"""

import argparse
import os
import sys
from pathlib import Path


def setup_python_path():
    """Add project root to Python path."""
    project_root = Path(__file__).parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


def run_server(host: str = None, port: int = None, reload: bool = False):
    """Launch the FastAPI server with uvicorn."""
    import uvicorn
    from voice_interview.core.config import configure_logging

    # Configure logging before starting server
    configure_logging()

    if host is None:
        host = os.getenv("HOST", "127.0.0.1")

    if port is None:
        port = int(os.getenv("PORT", "8000"))

    print("\n" + "=" * 60)
    print("🎙️  Voice Interview - Real-Time Mock Interviews")
    print("=" * 60)
    print(f"\n🔌 Interview socket: ws://{host}:{port}/ws/interview")
    print(f"📚 API Docs: http://{host}:{port}/api/docs")
    print("\nPress Ctrl+C to stop the server\n")

    # Sessions, relays and per-candidate locks are in-process: one worker only
    uvicorn.run(
        "voice_interview.api.app:app",
        host=host,
        port=port,
        reload=reload,
        reload_dirs=["voice_interview"] if reload else None,
        workers=1,
        log_level="info",
        access_log=False,
    )


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Voice Interview - Real-Time Mock Interviews"
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind the server (default: $HOST or 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind the server (default: $PORT or 8000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Reload on source changes (development only)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    setup_python_path()

    if args.debug:
        os.environ["LOG_LEVEL"] = "DEBUG"

    run_server(host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
