from __future__ import annotations

import argparse
import json
import logging
import os
from typing import List, Optional

from county_parcels.config import get_settings, reset_settings_cache
from county_parcels.db import ensure_schema, init_db, open_conn
from county_parcels.demo import DEFAULT_COUNT, DEFAULT_SEED, seed_demo
from county_parcels.logs import configure_logging, log_event
from county_parcels.maintenance import check_addresses, fix_addresses


logger = logging.getLogger("parcels.cli")


def _dumps(payload: dict) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True) + "\n"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="county_parcels",
        description="County parcel lookup: API server and data tools",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, etc.)")
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=None,
        help="Emit one JSON object per log line",
    )
    parser.add_argument("--db", default=None, help="SQLite DB path (default: PARCELS_DB_PATH)")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_serve = sub.add_parser("serve", help="Run the API server")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=3001)
    p_serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    sub.add_parser("init-db", help="Create the parcel tables if missing")

    p_seed = sub.add_parser("seed-demo", help="Load deterministic demo parcels")
    p_seed.add_argument("--count", type=int, default=DEFAULT_COUNT)
    p_seed.add_argument("--seed", type=int, default=DEFAULT_SEED)
    p_seed.add_argument("--force", action="store_true", help="Replace existing rows")

    p_check = sub.add_parser("check-addresses", help="Report addresses with repeated whitespace")
    p_check.add_argument("--sample", type=int, default=5)

    sub.add_parser("fix-addresses", help="Collapse repeated whitespace in addresses")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    log_json = settings.log_json if args.log_json is None else bool(args.log_json)
    configure_logging(args.log_level or settings.log_level, json_lines=log_json)

    db_path = args.db or settings.db_path

    if args.cmd == "serve":
        import uvicorn

        if args.db:
            # The server builds its settings from the environment.
            os.environ["PARCELS_DB_PATH"] = db_path
            reset_settings_cache()
        log_event(logger, "serve", host=args.host, port=args.port, environment=settings.environment)
        uvicorn.run(
            "county_parcels.api.app:app",
            host=args.host,
            port=int(args.port),
            reload=bool(args.reload),
            log_config=None,
        )
        return 0

    if args.cmd == "init-db":
        path = init_db(db_path)
        print(_dumps({"ok": True, "db": path}), end="")
        return 0

    with open_conn(db_path) as conn:
        if args.cmd == "seed-demo":
            written = seed_demo(conn, count=args.count, seed=args.seed, force=bool(args.force))
            print(_dumps({"ok": True, "db": db_path, "seeded": written}), end="")
            return 0

        if args.cmd == "check-addresses":
            ensure_schema(conn)
            report = check_addresses(conn, sample_size=args.sample)
            print(_dumps({"ok": True, **report}), end="")
            return 0

        if args.cmd == "fix-addresses":
            ensure_schema(conn)
            report = fix_addresses(conn)
            print(_dumps({"ok": True, **report}), end="")
            return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
