import argparse
import asyncio
import json
import sys
import io

# Keep Czech company names readable on Windows consoles
if sys.platform == 'win32':
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace')

from company_search.dispatcher import Dispatcher, STRATEGIES
from company_search.models import EMPLOYEE_BANDS, Query, Sector
from company_search.utils import load_settings, logger, section


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Company search aggregator")

    subparsers = parser.add_subparsers(dest='task', required=True, help='Task to run')

    # Serve Command
    serve_parser = subparsers.add_parser('serve', help='Run the HTTP API')
    serve_parser.add_argument("--host", help="Bind address (default from settings or 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, help="Port (default from settings or 8080)")

    # Search Command
    search_parser = subparsers.add_parser('search', help='Run one query and print the JSON response')
    search_parser.add_argument("--keyword", help="Company name or 8-digit identification number")
    search_parser.add_argument("--location", help="City filter, e.g. Praha")
    search_parser.add_argument("--sector", choices=[s.value for s in Sector], help="Sector filter")
    search_parser.add_argument("--employees", choices=[*EMPLOYEE_BANDS, "all"], help="Employee band filter")
    search_parser.add_argument("--strategy", choices=list(STRATEGIES), help="Override source_strategy from settings")

    return parser


async def run_search(args) -> dict:
    query = Query(
        keyword=args.keyword,
        location=args.location,
        sector=args.sector,
        employee_count_band=args.employees,
    )
    dispatcher = Dispatcher.from_settings(load_settings(), strategy=args.strategy)
    result = await dispatcher.search(query)
    return result.to_json()


def main():
    args = build_parser().parse_args()
    settings = load_settings()
    logger.setLevel(str(settings.get("log_level", "INFO")).upper())

    try:
        if args.task == 'serve':
            from company_search.app import create_app
            server = section(settings, "server")
            host = args.host or server.get("host", "127.0.0.1")
            port = args.port or int(server.get("port", 8080))
            logger.info(f"Serving company search on {host}:{port}")
            create_app(settings).run(host=host, port=port, debug=False)

        elif args.task == 'search':
            payload = asyncio.run(run_search(args))
            print(json.dumps(payload, ensure_ascii=False, indent=2))
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    except Exception as e:
        logger.exception(f"Critical error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
