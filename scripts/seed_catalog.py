#!/usr/bin/env python3
"""
Catalog Seeding Script
======================
Creates the catalog tables and loads products and occasions from JSON files
(lists of objects keyed by column name). Existing rows with the same id are
replaced.

Usage:
  python scripts/seed_catalog.py --products data/products.json --contexts data/contexts.json
  python scripts/seed_catalog.py --products data/products.json --database-url sqlite:///data/petrec.db
  python scripts/seed_catalog.py --create-only      # create tables, load nothing
"""

import argparse
import json
import sys
from pathlib import Path

# Allow running from repo root or scripts/ dir
_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(_ROOT))

from petrec.core.config import get_config
from petrec.data.database import init_db, make_engine, make_session_factory
from petrec.data.models import Occasion, Product
from petrec.utils.logger import get_logger

logger = get_logger("scripts.seed_catalog")


def load_rows(path: Path, model) -> list:
    with open(path, "r", encoding="utf-8") as f:
        records = json.load(f)
    columns = {c.name for c in model.__table__.columns}

    rows = []
    for record in records:
        unknown = set(record) - columns
        if unknown:
            logger.warning(f"{path.name}: ignoring unknown columns {sorted(unknown)}")
        rows.append(model(**{k: v for k, v in record.items() if k in columns}))
    return rows


def main():
    parser = argparse.ArgumentParser(description='Seed the petrec catalog database')
    parser.add_argument('--products', type=Path, help='JSON file with product records')
    parser.add_argument('--contexts', type=Path, help='JSON file with occasion records')
    parser.add_argument('--database-url', type=str, default=None,
                        help='Database URL (default: configured database_url)')
    parser.add_argument('--create-only', action='store_true',
                        help='Only create the tables')
    args = parser.parse_args()

    url = args.database_url or get_config().database_url
    engine = make_engine(url)
    init_db(engine)
    print(f"Tables ready at {url}")

    if args.create_only:
        return

    session_factory = make_session_factory(engine)
    with session_factory() as session:
        for path, model in ((args.products, Product), (args.contexts, Occasion)):
            if path is None:
                continue
            rows = load_rows(path, model)
            for row in rows:
                session.merge(row)
            print(f"Loaded {len(rows)} rows into {model.__tablename__} from {path}")
        session.commit()


if __name__ == '__main__':
    main()
