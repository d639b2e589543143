"""
Main entry point for the Essay Grading Service.

Usage:
    python main.py                 # Serve on the configured host/port
    python main.py --port 9000     # Override the port
    python main.py --reload        # Auto-reload for development
"""

import argparse

import uvicorn
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from config import settings


def main():
    """Parse command line flags and start the API server."""
    parser = argparse.ArgumentParser(description="Essay Grading Service")
    parser.add_argument("--host", default=settings.api_host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.api_port, help="Bind port")
    parser.add_argument(
        "--reload",
        action="store_true",
        default=settings.api_reload,
        help="Enable auto-reload",
    )
    args = parser.parse_args()

    uvicorn.run(
        "api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
