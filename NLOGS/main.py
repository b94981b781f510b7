#!/usr/bin/env python3
"""
NLOGS - Main Entry Point
Parse the command line and run the logs terminal UI
"""
import argparse
import logging
import sys
import traceback
from typing import List, Optional, Tuple

from NLOGS.config import ConfigError, Settings
from NLOGS.UI import run_app
from NLOGS.UI.views.logs.filters import LogFilters, TimeRange, filters_from_query
from NLOGS.util import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """
    Create the argument parser

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='nlogs',
        description='nself Logs - live service logs in the terminal',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m NLOGS
  python -m NLOGS --services api,auth --level error
  python -m NLOGS --query "services=api&level=warn&range=1h"
        """
    )

    parser.add_argument('--api-url', help='Base URL of the nself dashboard API')
    parser.add_argument('--max-logs', type=int, help='Maximum number of log entries kept')
    parser.add_argument('--poll-interval', type=float, help='Seconds between log API polls')
    parser.add_argument('--services', help='Comma separated services to show')
    parser.add_argument(
        '--level',
        choices=['all', 'info', 'warn', 'error', 'debug'],
        help='Only show logs of this level'
    )
    parser.add_argument('--search', help='Initial search text')
    parser.add_argument('--regex', action='store_true', help='Treat --search as a regular expression')
    parser.add_argument(
        '--range',
        dest='time_range',
        choices=[time_range.value for time_range in TimeRange if time_range is not TimeRange.CUSTOM],
        help='Time window to show'
    )
    parser.add_argument('--query', help='Share query string to start from (as copied with "s")')
    parser.add_argument('--env-file', help='Path to a .env file')

    return parser


def resolve_view_state(args: argparse.Namespace) -> Tuple[LogFilters, List[str]]:
    """
    Combine --query with the individual filter options

    Individual options take precedence over the share query.

    Returns:
        Tuple of (initial filters, initial service selection)
    """
    filters, services = filters_from_query(args.query or "")

    if args.services is not None:
        services = [name.strip() for name in args.services.split(",") if name.strip()]
    if args.level:
        filters = filters.with_level(args.level)
    if args.search is not None:
        filters = filters.update(search_text=args.search)
    if args.regex:
        filters = filters.update(regex_enabled=True)
    if args.time_range:
        filters = filters.update(time_range=TimeRange(args.time_range))

    return filters, services


def main(argv: Optional[List[str]] = None) -> int:
    args = create_parser().parse_args(argv)

    try:
        settings = Settings.from_env(args.env_file).override(
            api_url=args.api_url,
            max_logs=args.max_logs,
            poll_interval=args.poll_interval,
        )
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logger = setup_logging(settings.log_dir)
    filters, services = resolve_view_state(args)
    logger.info(f"Starting NLOGS against {settings.api_url}")

    try:
        run_app(settings=settings, filters=filters, selected_services=services)
    except KeyboardInterrupt:
        print("\nNLOGS terminated by user")
    except Exception as e:
        logging.getLogger('NLOGS').exception("NLOGS crashed")
        print(f"\nError running NLOGS: {e}")
        traceback.print_exc()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
