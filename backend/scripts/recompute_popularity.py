#!/usr/bin/env python3
"""
Recompute popularity scores for every published item (one sweep).

Uses the content store selected by the environment (CONTENT_STORE, DATASET_PATH,
FIREBASE_CREDENTIALS_PATH; see backend/config.py).

Usage:
  From repo root:
    python -m backend.scripts.recompute_popularity
  Only some items:
    python -m backend.scripts.recompute_popularity --item-id abc123 --item-id def456
  Seed the in-memory store from a dataset and print the resulting scores:
    python -m backend.scripts.recompute_popularity --dataset data/feed.json --print-scores
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from backend.config import get_config
from backend.services import InMemoryContentStore
from backend.state import EngineState
from feedrank.errors import PopularityWriteError
from feedrank.stages.popularity import UpdateOutcome

logger = logging.getLogger("backend.scripts.recompute_popularity")


async def _recompute_items(state: EngineState, item_ids: List[str]) -> int:
    failures = 0
    for item_id in item_ids:
        try:
            update = await state.updater.recompute(item_id)
        except PopularityWriteError as e:
            logger.error("[sweep] %s", e)
            failures += 1
            continue
        if update.outcome == UpdateOutcome.UPDATED:
            print(f"  {item_id}: {update.score:.4f}")
        else:
            print(f"  {item_id}: skipped (item no longer exists)")
    return failures


async def _run(args: argparse.Namespace) -> int:
    config = get_config()
    store = InMemoryContentStore.from_json(args.dataset) if args.dataset else None
    state = EngineState(config, store=store)

    if args.item_id:
        failures = await _recompute_items(state, args.item_id)
    else:
        report = await state.sweep.run_once()
        print(f"Updated {report.updated}, stale {report.stale}, failed {len(report.failed)}")
        failures = len(report.failed)

    if args.print_scores and isinstance(state.store, InMemoryContentStore):
        for item_id in await state.store.list_item_ids():
            item = state.store.get_item(item_id)
            print(f"  {item.slug or item.id}: {item.popularity_score:.4f}")
    return 1 if failures else 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Recompute feed popularity scores.")
    parser.add_argument("--item-id", action="append", help="Recompute only this item (repeatable)")
    parser.add_argument("--dataset", type=Path, help="Seed an in-memory store from this JSON dataset")
    parser.add_argument("--print-scores", action="store_true", help="Print scores after the run (in-memory store only)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_config().log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
