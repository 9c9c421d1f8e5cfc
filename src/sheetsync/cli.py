"""
sheetsync CLI - Entry point

Runs the web service (which hosts the sync engine) and a couple of
maintenance commands.
"""

import argparse
import sys
from pathlib import Path

from sheetsync.core.config import Config, load_config
from sheetsync.core.console import (
    print_error,
    print_position,
    print_server_banner,
    print_success,
)
from sheetsync.core.output import setup_from_config

# Project root detection (where pyproject.toml exists)
PROJECT_ROOT = Path(__file__).parent.parent.parent


def run_init_db(config: Config) -> int:
    """Create the product, oauth_tokens and sheet_mappings tables.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    from sheetsync.core.database import get_db_connection, init_database
    from sheetsync.core.db_adapter import configure_database

    configure_database(config.database.url)
    try:
        with get_db_connection() as conn:
            init_database(conn)
    except Exception as e:
        print_error(f"could not initialize database: {e}")
        return 1

    print_success("Database initialized")
    return 0


def run_position(config: Config) -> int:
    """Print the store's current change-log head.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    from sheetsync.core.db_adapter import configure_database
    from sheetsync.domain.sync.exceptions import StartupError
    from sheetsync.service import read_current_position

    configure_database(config.database.url)
    try:
        position = read_current_position()
    except StartupError as e:
        print_error(str(e))
        return 1

    print_position(position.log_file, position.log_pos)
    return 0


def run_serve(config: Config, host: str, port: int) -> int:
    """Check the store is reachable, then serve the API with uvicorn.

    Returns:
        Exit code (0 for clean shutdown, 1 for startup failure)
    """
    import uvicorn

    # uvicorn exits with 3 on a lifespan failure; check the store up front
    if run_position(config) != 0:
        print_error("startup failed; not starting server")
        return 1

    print_server_banner(host, port)
    uvicorn.run(
        "web.backend.main:app",
        host=host,
        port=port,
        app_dir=str(PROJECT_ROOT),
        log_level=config.logging.level.lower(),
    )
    return 0


def main() -> None:
    """Main entry point for the sheetsync command."""
    parser = argparse.ArgumentParser(
        description="sheetsync - keep a MySQL table and a Google Sheet in sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the API and sync engine")
    serve_parser.add_argument("--host", help="Bind address (default: [web] host)")
    serve_parser.add_argument(
        "--port", type=int, help="Bind port (default: [web] port)"
    )

    subparsers.add_parser("init-db", help="Create database tables")
    subparsers.add_parser("position", help="Print the current binlog position")

    args = parser.parse_args()

    if not args.subcommand:
        parser.print_help()
        sys.exit(1)

    config = load_config()
    setup_from_config(config.logging)

    if args.subcommand == "serve":
        sys.exit(
            run_serve(
                config,
                host=args.host or config.web.host,
                port=args.port or config.web.port,
            )
        )
    elif args.subcommand == "init-db":
        sys.exit(run_init_db(config))
    elif args.subcommand == "position":
        sys.exit(run_position(config))


if __name__ == "__main__":
    main()
