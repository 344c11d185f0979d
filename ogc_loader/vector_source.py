# ============================================================================
# CONTEXT - OGC FEATURES VECTOR SOURCE
# ============================================================================
# STATUS: Service Layer - Load orchestration per viewport extent
# PURPOSE: Resolve metadata/capabilities, supersede stale loads, run the paging
#          strategy and report the outcome to the feature store
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: OGCFeaturesVectorSource, LoadSession, LoadState
# INTERFACES: FeatureStore (add_features, remove_loaded_extent, changed)
# DEPENDENCIES: httpx (async), asyncio, uuid
# SOURCE: OGC API - Features service configured by OGCFeatureSourceOptions
# PATTERNS: Orchestrator, one live session per source instance
# ENTRY_POINTS: session = await source.load(extent, "EPSG:3857", success, failure)
# ============================================================================

"""
OGC Features Vector Source - Load Orchestrator

One instance per configured collection. Every call to load() is a new
LoadSession:

    1. Await collection metadata and the offset-support probe (memoized)
    2. Cancel the previous live session ("Extent changed")
    3. Resolve the request CRS, build the items URL, apply rewrite_url
    4. Run the next or offset strategy, streaming pages into the store
    5. Report success / failure; un-mark the extent if cancelled
    6. Always notify store.changed() so loading state never gets stuck

At most one session is live (uncancelled) per instance at any time.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

import httpx

from util_logger import LoggerFactory, ComponentType

from .cancellation import CancellationToken
from .config import OGCFeatureSourceOptions
from .crs import RequestCrsCache
from .exceptions import CollectionInfoError, LoadCancelledError
from .metadata import CollectionMetadataCache
from .models import CollectionMetadata, Extent
from .request_utils import FeatureDecoder, build_collection_request_url, collection_url
from .store import FeatureStore
from .strategy import StrategyKind, StrategyOptions, create_strategy, select_strategy

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "OGCFeaturesVectorSource")

SuccessCallback = Callable[[List[Any]], None]
FailureCallback = Callable[[], None]


class LoadState(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({LoadState.SUCCEEDED, LoadState.FAILED, LoadState.CANCELLED})


@dataclass
class LoadSession:
    """
    One load for one extent.

    pending -> succeeded | failed | cancelled; terminal states are final.
    """
    extent: Extent
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    request_crs: Optional[str] = None
    strategy: Optional[StrategyKind] = None
    token: CancellationToken = field(default_factory=CancellationToken)
    state: LoadState = LoadState.PENDING
    error: Optional[BaseException] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def is_live(self) -> bool:
        return not self.is_terminal and not self.token.cancelled

    def resolve(self, state: LoadState, error: Optional[BaseException] = None) -> None:
        if self.is_terminal:
            raise RuntimeError(
                f"Load session {self.session_id} is already {self.state.value}, cannot become {state.value}"
            )
        if state is LoadState.PENDING:
            raise ValueError("A load session cannot return to pending")
        self.state = state
        self.error = error


class OGCFeaturesVectorSource:
    """
    Feature loader for one OGC API Features collection.

    Example:
        async with httpx.AsyncClient() as client:
            source = OGCFeaturesVectorSource(options, client, store)
            session = await source.load((0, 0, 10, 10), "EPSG:4326")
    """

    def __init__(
        self,
        options: OGCFeatureSourceOptions,
        client: httpx.AsyncClient,
        store: FeatureStore,
        decoder: Optional[FeatureDecoder] = None,
        metadata_cache: Optional[CollectionMetadataCache] = None
    ):
        self.options = options
        self.client = client
        self.store = store
        self.decoder = decoder
        self.items_url = collection_url(options.base_url, "collections", options.collection_id, "items")
        self.metadata_cache = metadata_cache or CollectionMetadataCache(
            client, options.base_url, options.collection_id
        )
        self.crs_cache = RequestCrsCache(options.crs)
        self._current_session: Optional[LoadSession] = None

        if options.attributions and store.attributions is None:
            store.attributions = options.attributions

    @property
    def current_session(self) -> Optional[LoadSession]:
        return self._current_session

    def _dimensions(self, session: Optional[LoadSession] = None, **extra) -> dict:
        dims = {'collection_id': self.options.collection_id}
        if session is not None:
            dims['session_id'] = session.session_id
            dims['strategy'] = session.strategy.value if session.strategy else None
        dims.update(extra)
        return dims

    async def load(
        self,
        extent: Sequence[float],
        map_crs: str,
        success: Optional[SuccessCallback] = None,
        failure: Optional[FailureCallback] = None
    ) -> LoadSession:
        """
        Load all features intersecting `extent` into the store.

        Never raises for load failures: the outcome is reported through the
        callbacks and recorded on the returned session.
        """
        session = LoadSession(extent=tuple(extent))
        try:
            features = await self._load_impl(session, map_crs)
        except LoadCancelledError as e:
            session.resolve(LoadState.CANCELLED, e)
            logger.debug(
                f"Load cancelled: {e.reason}",
                extra={'custom_dimensions': self._dimensions(session)}
            )
            if failure:
                failure()
        except CollectionInfoError as e:
            # Already logged once by the metadata cache
            session.resolve(LoadState.FAILED, e)
            if failure:
                failure()
        except asyncio.CancelledError as e:
            session.token.cancel("Load task cancelled")
            session.resolve(LoadState.CANCELLED, e)
            raise
        except Exception as e:
            session.resolve(LoadState.FAILED, e)
            logger.error(
                f"Failed to load features from ogc service: {e}",
                exc_info=True,
                extra={'custom_dimensions': self._dimensions(session, error_type=type(e).__name__)}
            )
            if failure:
                failure()
        else:
            session.resolve(LoadState.SUCCEEDED)
            if success:
                success(features)
        finally:
            self.store.changed()
        return session

    async def _load_impl(self, session: LoadSession, map_crs: str) -> List[Any]:
        metadata, capabilities = await asyncio.gather(
            self.metadata_cache.get_metadata(),
            self.metadata_cache.get_capabilities()
        )
        self._apply_attributions(metadata)

        previous = self._current_session
        if previous is not None and previous.is_live:
            previous.token.cancel("Extent changed")
        self._current_session = session

        try:
            session.strategy = select_strategy(
                self.options.strategy, capabilities.supports_offset_strategy
            )
            session.request_crs = self.crs_cache.resolve(map_crs, metadata.crs)
            full_url = self._get_request_url(session.extent, session.request_crs)

            def on_features_loaded(features: List[Any]) -> None:
                if session.token.cancelled:
                    logger.debug(f"Dropping {len(features)} features of cancelled session")
                    return
                logger.debug(f"Adding {len(features)} features")
                self.store.add_features(features)

            strategy_options = StrategyOptions(
                client=self.client,
                full_url=full_url,
                on_features_loaded=on_features_loaded,
                limit=self.options.limit,
                decoder=self.decoder,
                token=session.token,
                max_pages=self.options.max_pages
            )
            strategy = create_strategy(
                session.strategy, strategy_options, concurrency=self.options.max_concurrent_requests
            )
            features = await strategy.load()
            session.token.raise_if_cancelled()
        except (LoadCancelledError, asyncio.CancelledError):
            self.store.remove_loaded_extent(session.extent)
            raise

        logger.info(
            f"Finished loading {len(features)} features for extent {session.extent}",
            extra={'custom_dimensions': self._dimensions(session, feature_count=len(features))}
        )
        return features

    def _apply_attributions(self, metadata: CollectionMetadata) -> None:
        if self.store.attributions is None and metadata.attribution:
            self.store.attributions = metadata.attribution

    def _get_request_url(self, extent: Extent, request_crs: str) -> httpx.URL:
        url = build_collection_request_url(self.items_url, extent, request_crs)
        rewrite_url = self.options.rewrite_url
        if rewrite_url is not None:
            rewritten = rewrite_url(url)
            if rewritten is not None:
                url = httpx.URL(str(rewritten))
        return url
