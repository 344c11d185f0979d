# ============================================================================
# CONTEXT - OGC LOADER MODELS
# ============================================================================
# STATUS: Foundation - Data model for the feature loader
# PURPOSE: Pydantic models for server documents, dataclasses for page results
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: Extent, OGCLink, CollectionMetadata, CollectionCapabilities,
#          FeatureBatchResponse, LoadedFeatureCollection, LoadQueryParameters
# INTERFACES: Pydantic BaseModel, dataclasses
# PYDANTIC_MODELS: OGCLink, CollectionMetadata, CollectionCapabilities,
#                  LoadedFeatureCollection, LoadQueryParameters
# DEPENDENCIES: pydantic, typing, dataclasses
# SOURCE: OGC API - Features Core 1.0 responses
# ============================================================================

"""
OGC API - Features client-side models.

The loader only relies on a small subset of the server documents:
- Collection metadata: id, crs list, attribution
- Items responses: features, numberMatched, links (rel="next")

Server documents are parsed leniently (unknown fields are ignored) since
server implementations vary a lot.

References:
- OGC API - Features Core 1.0: https://docs.ogc.org/is/17-069r4/17-069r4.html
- OGC API - Features CRS (Part 2): https://docs.ogc.org/is/18-058r1/18-058r1.html
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Bounding rectangle (minX, minY, maxX, maxY) in map coordinates
Extent = Tuple[float, float, float, float]

DEFAULT_CRS = "http://www.opengis.net/def/crs/OGC/1.3/CRS84"


class OGCLink(BaseModel):
    """
    OGC API Link object (RFC 8288 Web Linking).
    """
    model_config = ConfigDict(extra="ignore")

    href: str = Field(
        description="URL of the linked resource"
    )
    rel: str = Field(
        description="Link relation type (self, alternate, next, prev, etc.)"
    )
    type: Optional[str] = Field(
        default=None,
        description="Media type of the linked resource"
    )
    title: Optional[str] = Field(
        default=None,
        description="Human-readable title for the link"
    )


class CollectionMetadata(BaseModel):
    """
    Collection description as returned by GET /collections/{collectionId}.

    Fetched once per source instance and never refreshed.
    """
    model_config = ConfigDict(extra="ignore")

    id: str = Field(
        description="Collection identifier"
    )
    crs: Optional[List[str]] = Field(
        default=None,
        description="Supported CRS URIs in server order (first is the default)"
    )
    attribution: Optional[str] = Field(
        default=None,
        description="Attribution text (e.g. copyright hint)"
    )
    title: Optional[str] = Field(
        default=None,
        description="Human-readable title"
    )

    @field_validator("crs", mode="before")
    @classmethod
    def ignore_malformed_crs(cls, v: Any) -> Optional[List[str]]:
        """A non-list crs field is treated as absent."""
        if not isinstance(v, list):
            return None
        return [str(item) for item in v]


class CollectionCapabilities(BaseModel):
    """Result of the offset-support probe."""
    supports_offset_strategy: bool = Field(
        default=False,
        description="True if the service pages with offset/limit and reports numberMatched"
    )


@dataclass
class FeatureBatchResponse:
    """
    Result of one items request.

    features:       decoded features in server order
    next_link:      href of the single rel="next" link, if any
    number_matched: total count hint, stable across pages of one query
    """
    features: List[Any] = field(default_factory=list)
    next_link: Optional[str] = None
    number_matched: Optional[int] = None


class LoadedFeatureCollection(BaseModel):
    """
    GeoJSON FeatureCollection produced by one completed load session.

    Returned by the loader HTTP trigger.
    """
    type: Literal["FeatureCollection"] = Field(
        default="FeatureCollection",
        description="GeoJSON type"
    )
    features: List[Dict[str, Any]] = Field(
        description="Array of GeoJSON Feature objects"
    )
    numberReturned: int = Field(
        description="Number of features loaded for the extent"
    )
    strategy: Optional[str] = Field(
        default=None,
        description="Paging strategy used for the load (next or offset)"
    )
    crs: Optional[str] = Field(
        default=None,
        description="CRS the features were requested in"
    )
    timeStamp: str = Field(
        description="Timestamp of the response (ISO 8601)"
    )


class LoadQueryParameters(BaseModel):
    """
    Query parameters of the loader items endpoint.

    bbox arrives as "minx,miny,maxx,maxy" and is parsed into an Extent.
    """
    bbox: Extent = Field(
        description="Extent to load (minx,miny,maxx,maxy) in map CRS"
    )
    map_crs: str = Field(
        default="EPSG:4326",
        description="CRS of the requesting map (e.g. EPSG:3857)"
    )
    strategy: Optional[Literal["next", "offset"]] = Field(
        default=None,
        description="Force a paging strategy (auto-detected if not set)"
    )

    @field_validator("bbox", mode="before")
    @classmethod
    def parse_bbox(cls, v: Any) -> Any:
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",")]
            if len(parts) != 4:
                raise ValueError("bbox must have exactly 4 comma-separated values")
            return tuple(float(p) for p in parts)
        return v

    @field_validator("bbox")
    @classmethod
    def validate_bbox_order(cls, v: Extent) -> Extent:
        minx, miny, maxx, maxy = v
        if minx > maxx or miny > maxy:
            raise ValueError("bbox min values must not exceed max values")
        return v
