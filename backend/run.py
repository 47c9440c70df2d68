"""
Serve the ticket forms API with uvicorn.

Defaults come from the application settings (API_HOST, API_PORT,
LOG_LEVEL); flags override them.

Usage:
    python run.py
    python run.py --reload              # Development mode with auto-reload
    python run.py --port 8080 --log-level debug
"""
import argparse
import uvicorn

from ticket_forms.config.settings import settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve the ticket form builder and live form API")
    parser.add_argument("--host", default=settings.api_host, help=f"Bind address (default: {settings.api_host})")
    parser.add_argument("--port", type=int, default=settings.api_port, help=f"Bind port (default: {settings.api_port})")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    parser.add_argument(
        "--log-level",
        default=settings.log_level.lower(),
        choices=["critical", "error", "warning", "info", "debug"],
        help="uvicorn log level"
    )
    return parser


def main():
    args = build_parser().parse_args()

    print(f"Ticket forms API on http://{args.host}:{args.port} ({settings.environment})")
    print(f"  Forms:  {settings.mongo_db}.{settings.form_config_collection}")
    print(f"  Cache:  {settings.form_cache_path}")
    print()

    # Single worker: the engine cache is per process
    uvicorn.run(
        "ticket_forms.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
