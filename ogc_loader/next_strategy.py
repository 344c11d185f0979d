# ============================================================================
# CONTEXT - NEXT-LINK STRATEGY
# ============================================================================
# STATUS: Service Layer - Sequential pagination
# PURPOSE: Load all pages by following rel="next" links
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: NextStrategy
# DEPENDENCIES: httpx (async)
# ============================================================================

"""
Next-link strategy (OGC API - Features Core compliant).

Serial by construction: every request depends on the previous response.
Features of each page are streamed to the callback before the next
request is issued. Any failure aborts the loop; pages already streamed
stay with the caller.
"""

from typing import Any, List

import httpx

from util_logger import LoggerFactory, ComponentType

from .exceptions import PageLimitExceededError
from .request_utils import query_features
from .strategy import StrategyOptions

logger = LoggerFactory.create_logger(ComponentType.STRATEGY, "NextStrategy")


class NextStrategy:
    """Loads features page by page until no next link is returned."""

    def __init__(self, options: StrategyOptions):
        self.options = options

    async def load(self) -> List[Any]:
        options = self.options
        url = httpx.URL(str(options.full_url)).copy_set_param("limit", str(options.limit))

        all_features: List[Any] = []
        pages = 0
        current_url = url
        while current_url is not None:
            if options.max_pages is not None and pages >= options.max_pages:
                raise PageLimitExceededError(options.max_pages)

            response = await query_features(
                options.client, current_url, options.decoder, options.token
            )
            pages += 1
            options.on_features_loaded(response.features)
            all_features.extend(response.features)

            # Next links are used verbatim, the server owns their encoding
            current_url = httpx.URL(response.next_link) if response.next_link else None

        logger.debug(
            f"Loaded {len(all_features)} features in {pages} pages",
            extra={'custom_dimensions': {'strategy': 'next', 'pages': pages}}
        )
        return all_features
