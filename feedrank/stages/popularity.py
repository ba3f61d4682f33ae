"""
Popularity score updates, viewer independent.

PopularityUpdater.recompute reads one snapshot of an item's counters, takes "now"
immediately after (no await in between), computes the decayed score, and writes it.
The write is idempotent so failed writes are retried rather than abandoned.
A vanished item is a logged no-op.

Two triggers share the same recompute: on_engagement (after a like, bookmark,
comment, or view) and PopularitySweep (periodic pass over published items).
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel

from ..errors import FeedError, PopularityWriteError
from ..models.config import FeedConfig, resolve_config
from ..models.content import LifecycleStatus
from ..models.scoring import popularity_score
from ..store import ContentStore, WriteResult
from ..utils.time import utc_now

logger = logging.getLogger(__name__)


class UpdateOutcome(str, Enum):
    UPDATED = "updated"
    STALE_NO_OP = "stale_no_op"


class PopularityUpdate(BaseModel):
    item_id: str
    outcome: UpdateOutcome
    score: Optional[float] = None
    computed_at: Optional[datetime] = None


class EngagementEvent(str, Enum):
    VIEW = "view"
    LIKE = "like"
    UNLIKE = "unlike"
    BOOKMARK = "bookmark"
    UNBOOKMARK = "unbookmark"
    COMMENT = "comment"
    UNCOMMENT = "uncomment"


class PopularityUpdater:
    """Recomputes and persists popularity_score for single items."""

    def __init__(
        self,
        store: ContentStore,
        config: Optional[FeedConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        retry_delay: float = 0.05,
    ):
        self._store = store
        self._config = resolve_config(config)
        self._clock = clock
        self._retry_delay = retry_delay

    async def recompute(self, item_id: str) -> PopularityUpdate:
        snapshot = await self._store.get_item_snapshot(item_id)
        now = self._clock()
        if snapshot is None:
            logger.info("[popularity] STALE_WRITE_NO_OP item_id=%s (missing before read)", item_id)
            return PopularityUpdate(item_id=item_id, outcome=UpdateOutcome.STALE_NO_OP)

        score = popularity_score(snapshot, now, self._config)
        result = await self._write_with_retry(item_id, score)
        if result == WriteResult.NOT_FOUND:
            logger.info("[popularity] STALE_WRITE_NO_OP item_id=%s (deleted before write)", item_id)
            return PopularityUpdate(item_id=item_id, outcome=UpdateOutcome.STALE_NO_OP)

        logger.debug("[popularity] item_id=%s score=%.4f", item_id, score)
        return PopularityUpdate(
            item_id=item_id,
            outcome=UpdateOutcome.UPDATED,
            score=score,
            computed_at=now,
        )

    async def _write_with_retry(self, item_id: str, score: float) -> WriteResult:
        attempts = self._config.popularity_write_attempts
        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                return await self._store.write_popularity_score(item_id, score)
            except Exception as e:
                last_error = e
                logger.warning(
                    "[popularity] WRITE_FAILED item_id=%s attempt=%d/%d error=%s",
                    item_id, attempt, attempts, e,
                )
                if attempt < attempts:
                    await asyncio.sleep(self._retry_delay * attempt)
        raise PopularityWriteError(
            f"writing popularity score for {item_id} failed after {attempts} attempts"
        ) from last_error

    async def on_engagement(self, item_id: str, event: EngagementEvent) -> PopularityUpdate:
        """Recompute after an engagement-changing event reported by a collaborator."""
        logger.debug("[popularity] engagement item_id=%s event=%s", item_id, EngagementEvent(event).value)
        return await self.recompute(item_id)


class SweepReport(BaseModel):
    updated: int = 0
    stale: int = 0
    failed: List[str] = []


class PopularitySweep:
    """
    Periodic pass that recomputes every published item through the same updater.

    A read or write failure on one item is recorded in the report and the pass moves on.
    """

    def __init__(self, store: ContentStore, updater: PopularityUpdater):
        self._store = store
        self._updater = updater

    async def run_once(self) -> SweepReport:
        report = SweepReport()
        item_ids = await self._store.list_item_ids(LifecycleStatus.PUBLISHED.value)
        for item_id in item_ids:
            try:
                update = await self._updater.recompute(item_id)
            except FeedError as e:
                logger.warning("[sweep] RECOMPUTE_FAILED item_id=%s error=%s", item_id, e)
                report.failed.append(item_id)
                continue
            if update.outcome == UpdateOutcome.UPDATED:
                report.updated += 1
            else:
                report.stale += 1
        logger.info(
            "[sweep] items=%d updated=%d stale=%d failed=%d",
            len(item_ids), report.updated, report.stale, len(report.failed),
        )
        return report
