"""Engine wiring: content store, feed config, composer, and popularity updater built from BackendConfig."""

import logging
from typing import Optional

from feedrank.models.config import FeedConfig
from feedrank.stages.orchestrator import FeedComposer
from feedrank.stages.popularity import PopularitySweep, PopularityUpdater
from feedrank.store import ContentStore

from .config import BackendConfig, get_config
from .services import FirestoreContentStore, InMemoryContentStore

logger = logging.getLogger(__name__)


class EngineState:
    """Holds the collaborators a serving layer needs; nothing request-scoped lives here."""

    def __init__(self, config: BackendConfig, store: Optional[ContentStore] = None):
        ok, errors = config.validate()
        if not ok:
            raise ValueError("Invalid backend configuration: " + "; ".join(errors))
        self.config = config
        self.feed_config: FeedConfig = config.load_feed_config()
        self.store: ContentStore = store if store is not None else self._create_store(config)
        logger.info("[startup] Content store: %s", type(self.store).__name__)
        self.composer = FeedComposer(self.store, self.feed_config)
        self.updater = PopularityUpdater(self.store, self.feed_config)
        self.sweep = PopularitySweep(self.store, self.updater)

    def _create_store(self, config: BackendConfig) -> ContentStore:
        """Firestore when configured, else in-memory (seeded from dataset_path when set)."""
        if config.content_store == "firestore":
            return FirestoreContentStore(
                project_id=config.firebase_project_id,
                credentials_path=config.firebase_credentials_path,
            )
        if config.dataset_path:
            logger.info("[startup] Seeding in-memory store from %s", config.dataset_path)
            return InMemoryContentStore.from_json(config.dataset_path)
        return InMemoryContentStore()


_state: Optional[EngineState] = None


def get_state() -> EngineState:
    global _state
    if _state is None:
        _state = EngineState(get_config())
    return _state
