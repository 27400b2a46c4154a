import argparse
import json
import logging
import sys

from dotenv import load_dotenv

from .config import Settings, load_organizations
from .logging_setup import LOGGER_NAME, setup_logging
from .reporting import export_csv, summarize
from .store import OrganizationStore

logger = logging.getLogger(LOGGER_NAME)


def _build(settings: Settings):
    from .admin_api import build_orchestrator

    store = OrganizationStore(load_organizations(settings.organizations_file))
    return store, build_orchestrator(settings, store)


def cmd_serve(settings: Settings, host: str, port: int):
    import uvicorn

    from .admin_api import create_app

    logger.info("NTGD Monitor running at http://%s:%s", host, port)
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())


def cmd_list(settings: Settings):
    store, _ = _build(settings)
    for record in store:
        print(f"[{record.id}] {record.name} | {record.url}")


def cmd_refresh(settings: Settings):
    _, orchestrator = _build(settings)
    result = orchestrator.refresh_all()
    print(json.dumps(result.to_dict(), indent=2))
    return result


def cmd_summary(settings: Settings, refresh: bool):
    store, orchestrator = _build(settings)
    if refresh:
        orchestrator.refresh_all()
    print(json.dumps(summarize(store.all()), indent=2))


def cmd_export(settings: Settings, refresh: bool, out_path: str | None):
    store, orchestrator = _build(settings)
    if refresh:
        orchestrator.refresh_all()
    body = export_csv(store.all())
    if out_path:
        with open(out_path, "w", encoding="utf-8", newline="") as fh:
            fh.write(body)
        logger.info("Wrote %d organizations to %s", len(store), out_path)
    else:
        sys.stdout.write(body)


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="North Texas Giving Day monitor")
    ap.add_argument(
        "command",
        choices=["serve", "list", "refresh", "summary", "export"],
    )
    ap.add_argument("--host", type=str, default=None)
    ap.add_argument("--port", type=int, default=None)
    ap.add_argument(
        "--no-refresh",
        action="store_true",
        help="summary/export: report the seeded state without scraping first",
    )
    ap.add_argument("--out", type=str, default=None, help="CSV path for export (default: stdout)")
    return ap.parse_args(argv)


def main(argv=None):
    load_dotenv()
    args = parse_args(argv)
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    if args.command == "serve":
        cmd_serve(settings, host=args.host or settings.host, port=args.port or settings.port)
    elif args.command == "list":
        cmd_list(settings)
    elif args.command == "refresh":
        cmd_refresh(settings)
    elif args.command == "summary":
        cmd_summary(settings, refresh=not args.no_refresh)
    elif args.command == "export":
        cmd_export(settings, refresh=not args.no_refresh, out_path=args.out)


if __name__ == "__main__":
    main()
