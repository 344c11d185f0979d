# ============================================================================
# CONTEXT - FEATURE STORE CONTRACT
# ============================================================================
# STATUS: Foundation - Interface to the consuming feature store
# PURPOSE: Append-only sink for loaded features plus loading-state hooks
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: FeatureStore, InMemoryFeatureStore
# DEPENDENCIES: typing
# ============================================================================

"""
Feature store contract.

The loader never owns features: it streams them into a store through
add_features() (possibly many times per load) and reports extents that
must be retried through remove_loaded_extent().
"""

from typing import Any, List, Optional, Protocol, Sequence, runtime_checkable

from .models import Extent


@runtime_checkable
class FeatureStore(Protocol):
    attributions: Optional[str]

    def add_features(self, features: Sequence[Any]) -> None:
        ...

    def remove_loaded_extent(self, extent: Extent) -> None:
        ...

    def changed(self) -> None:
        ...


class InMemoryFeatureStore:
    """
    Minimal append-only store.

    Tracks loaded extents (marked by the caller via mark_loaded) and
    counts changed() notifications.
    """

    def __init__(self, attributions: Optional[str] = None):
        self.attributions = attributions
        self.features: List[Any] = []
        self.loaded_extents: List[Extent] = []
        self.change_count = 0

    def add_features(self, features: Sequence[Any]) -> None:
        self.features.extend(features)

    def mark_loaded(self, extent: Extent) -> None:
        self.loaded_extents.append(tuple(extent))

    def remove_loaded_extent(self, extent: Extent) -> None:
        extent = tuple(extent)
        if extent in self.loaded_extents:
            self.loaded_extents.remove(extent)

    def changed(self) -> None:
        self.change_count += 1

    def __len__(self) -> int:
        return len(self.features)
