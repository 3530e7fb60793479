#!/usr/bin/env python3
"""Rebuild, sync or tear down the search indices of one endpoint configuration."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from elementsearch.database import SessionLocal
from elementsearch.exceptions import EndpointNotFound, IndexingError, RebuildFailed
from elementsearch.log_config import configure_logging
from elementsearch.services.endpoint_config import get_endpoint_config
from elementsearch.services.index_manager import index_manager
from elementsearch.services.index_persistence import SearchBackendUnavailable
from elementsearch.services.rebuild_engine import rebuild_engine


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Rebuild the search indices of an endpoint configuration.")
    parser.add_argument("name", help="Endpoint configuration name")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--sync-only", action="store_true", help="Create or migrate indices without reindexing elements")
    mode.add_argument("--teardown", action="store_true", help="Delete every physical index of the endpoint")
    args = parser.parse_args(argv)

    configure_logging()
    print(f"Starting index rebuilding for configuration: {args.name}")

    with SessionLocal() as db:
        try:
            if args.teardown:
                deleted = index_manager.delete_all_physical_indices(args.name)
                print(json.dumps({"endpoint": args.name, "deleted": deleted}))
                return 0

            if args.sync_only:
                config = get_endpoint_config(db, args.name)
                if config is None:
                    raise EndpointNotFound(f'No endpoint configuration named "{args.name}"')
                index_manager.sync_endpoint(config)
                print(json.dumps({"endpoint": args.name, "synced": index_manager.resolver.all_logical_names(config)}))
                return 0

            report = rebuild_engine.run(db, args.name)
        except RebuildFailed as exc:
            print(json.dumps({"endpoint": args.name, "failed_stage": exc.stage, "error": str(exc)}), file=sys.stderr)
            return 1
        except (IndexingError, SearchBackendUnavailable) as exc:
            print(json.dumps({"endpoint": args.name, "error": str(exc)}), file=sys.stderr)
            return 1

    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
