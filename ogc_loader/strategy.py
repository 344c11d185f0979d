# ============================================================================
# CONTEXT - PAGING STRATEGY SELECTION
# ============================================================================
# STATUS: Service Layer - Strategy kinds and shared load options
# PURPOSE: Pick "next" or "offset" once per load and build the executor
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: StrategyKind, StrategyOptions, PagingStrategy, select_strategy,
#          create_strategy
# DEPENDENCIES: httpx, dataclasses, enum
# PATTERNS: Tagged strategy kind, factory function
# ============================================================================

"""
Paging strategy selection.

Two strategies exist:
- next:   standards compliant, follows rel="next" links one page at a time
- offset: non-standard offset/limit paging with parallel requests per round

The kind is decided once per load (from configuration and the capability
probe) and passed down explicitly; the strategies themselves never branch
on it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol

import httpx

from .cancellation import CancellationToken
from .config import DEFAULT_CONCURRENCY, DEFAULT_LIMIT
from .request_utils import FeatureDecoder

# Receives the features of one page as soon as the page arrives
FeaturesCallback = Callable[[List[Any]], None]


class StrategyKind(str, Enum):
    NEXT = "next"
    OFFSET = "offset"


def select_strategy(configured: Optional[str], supports_offset: bool) -> StrategyKind:
    """
    Decide the paging strategy for a source.

    `offset` is only used if the service was probed to support it and the
    configuration does not force `next`. A forced `offset` on a service
    without offset support falls back to `next`.
    """
    if configured:
        kind = StrategyKind(configured)
    else:
        kind = StrategyKind.OFFSET if supports_offset else StrategyKind.NEXT

    if kind is StrategyKind.OFFSET and not supports_offset:
        return StrategyKind.NEXT
    return kind


@dataclass
class StrategyOptions:
    """Inputs shared by both strategies for one load session."""
    client: httpx.AsyncClient
    full_url: httpx.URL
    on_features_loaded: FeaturesCallback
    limit: int = DEFAULT_LIMIT
    decoder: Optional[FeatureDecoder] = None
    token: Optional[CancellationToken] = None
    max_pages: Optional[int] = None


class PagingStrategy(Protocol):
    async def load(self) -> List[Any]:
        ...


def create_strategy(
    kind: StrategyKind,
    options: StrategyOptions,
    concurrency: int = DEFAULT_CONCURRENCY
) -> PagingStrategy:
    """Build the executor for `kind`."""
    # Local imports, both strategy modules import StrategyOptions from here
    from .next_strategy import NextStrategy
    from .offset_strategy import OffsetStrategy

    if kind is StrategyKind.OFFSET:
        return OffsetStrategy(options, concurrency=concurrency)
    return NextStrategy(options)
