# database/maintenance.py
"""
Search cache maintenance.

Run after adding a virtual attribute or changing a getter:

    $ python -m database.maintenance resync person
    $ python -m database.maintenance verify member --batch-size 500

``resync`` re-saves the cache of every row (one UPDATE per row: use it in a
maintenance window). ``verify`` only reports how many rows are stale.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from core.settings import SWEEP_BATCH_SIZE, configure_logging

from .db_setup import get_engine, init_db
from .models import MODELS
from .store import SQLAlchemyRecordStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resync or verify the virtual attribute search cache.")
    parser.add_argument("command", choices=("resync", "verify"))
    parser.add_argument("model", choices=sorted(MODELS))
    parser.add_argument("--batch-size", type=int, default=SWEEP_BATCH_SIZE)
    parser.add_argument("--db-url", default=None, help="defaults to VIRTUAL_DB_URL")
    parser.add_argument("--log-level", default=None)
    return parser


def main(argv: Optional[List[str]] = None, store: Optional[SQLAlchemyRecordStore] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if store is None:
        engine = get_engine(args.db_url)
        init_db(engine)
        store = SQLAlchemyRecordStore(engine)

    model = MODELS[args.model]
    if args.command == "resync":
        report = store.sweeper.resync(model, batch_size=args.batch_size)
    else:
        report = store.sweeper.verify(model, batch_size=args.batch_size)

    print(json.dumps(report.as_dict(), indent=2))
    return 1 if args.command == "verify" and report.stale else 0


if __name__ == "__main__":
    sys.exit(main())
