# Copyright 2025 Google LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Data models for search functionality.

This module defines Pydantic models for the search intents issued by callers,
the wire request and response exchanged with the search endpoint, and the
aggregate state accumulated across the pages of one search session.
"""

from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import FailureKind, IntentKind, SearchStatus

DEFAULT_PAGE_SIZE = 12


class GeoFilter(BaseModel):
    """Circle around a point, used for "nearby" searches."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    radius_m: int = Field(..., gt=0, description="Search radius in meters")


class SearchIntent(BaseModel):
    """What the caller wants to see, before it is encoded for the wire."""

    model_config = ConfigDict(frozen=True)

    query: str = Field(default="", description="Free-text query, may be empty")
    districts: frozenset[str] = Field(
        default_factory=frozenset, description="External district codes"
    )
    keywords: frozenset[str] = Field(
        default_factory=frozenset, description="External keyword/category codes"
    )
    geo: GeoFilter | None = None
    language: str | None = Field(
        default=None, description="Language code forwarded to the endpoint as-is"
    )
    page: int = Field(default=0, ge=0)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    kind: IntentKind = IntentKind.FRESH

    @model_validator(mode="after")
    def fresh_search_starts_at_first_page(self) -> "SearchIntent":
        if self.kind == IntentKind.FRESH and self.page != 0:
            raise ValueError(
                f"A fresh search must request page 0, got page {self.page}"
            )
        return self

    @property
    def is_fresh(self) -> bool:
        return self.kind == IntentKind.FRESH

    @classmethod
    def fresh(
        cls,
        query: str = "",
        *,
        districts: Iterable[str] = (),
        keywords: Iterable[str] = (),
        geo: GeoFilter | None = None,
        language: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> "SearchIntent":
        return cls(
            query=query,
            districts=frozenset(districts),
            keywords=frozenset(keywords),
            geo=geo,
            language=language,
            page=0,
            page_size=page_size,
            kind=IntentKind.FRESH,
        )

    def next_page(self, page_index: int) -> "SearchIntent":
        """Load-more intent for `page_index` with the same filters."""
        return SearchIntent(
            query=self.query,
            districts=self.districts,
            keywords=self.keywords,
            geo=self.geo,
            language=self.language,
            page=page_index,
            page_size=self.page_size,
            kind=IntentKind.LOAD_MORE,
        )


class SearchDescriptor(BaseModel):
    """Canonical, transport-ready encoding of a SearchIntent."""

    model_config = ConfigDict(frozen=True)

    query: str | None = None
    districts: str | None = None
    keywords: str | None = None
    language: str | None = None
    page: int
    hits_per_page: int
    around_lat_lng: str | None = None
    around_radius: int | None = None

    @model_validator(mode="after")
    def geo_parameters_come_together(self) -> "SearchDescriptor":
        if (self.around_lat_lng is None) != (self.around_radius is None):
            raise ValueError(
                "'around_lat_lng' and 'around_radius' must be set together"
            )
        return self

    def to_query_params(self) -> dict[str, str]:
        """Query-string parameters exactly as the search endpoint expects them."""
        params: dict[str, str] = {}
        if self.query is not None:
            params["query"] = self.query
        if self.districts is not None:
            params["districts"] = self.districts
        if self.keywords is not None:
            params["keywords"] = self.keywords
        if self.language is not None:
            params["language"] = self.language
        params["page"] = str(self.page)
        params["hitsPerPage"] = str(self.hits_per_page)
        if self.around_lat_lng is not None:
            params["aroundLatLng"] = self.around_lat_lng
            params["aroundRadius"] = str(self.around_radius)
        return params


class SearchResponse(BaseModel):
    """One page of hits as returned by the search endpoint.

    Missing counters default the same way the endpoint's own clients read them.
    """

    model_config = ConfigDict(populate_by_name=True)

    hits: list[dict[str, Any]] = Field(default_factory=list)
    nb_hits: int = Field(default=0, alias="nbHits", ge=0)
    page: int = Field(default=0, ge=0)
    nb_pages: int = Field(default=0, alias="nbPages", ge=0)
    hits_per_page: int = Field(default=20, alias="hitsPerPage")
    processing_time_ms: str | None = Field(default=None, alias="processingTimeMS")

    @field_validator("hits", mode="before")
    @classmethod
    def null_hits_are_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("processing_time_ms", mode="before")
    @classmethod
    def stringify_processing_time(cls, v: Any) -> Any:
        return None if v is None else str(v)

    @property
    def has_next_page(self) -> bool:
        return self.page < self.nb_pages - 1

    @property
    def has_previous_page(self) -> bool:
        return self.page > 0


class Restaurant(BaseModel):
    """Search hit. Only the identity is interpreted, other fields pass through."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(..., min_length=1)
    name_en: str | None = Field(default=None, alias="Name_EN")
    name_tc: str | None = Field(default=None, alias="Name_TC")
    district_en: str | None = Field(default=None, alias="District_EN")
    district_tc: str | None = Field(default=None, alias="District_TC")

    @model_validator(mode="before")
    @classmethod
    def identity_from_object_id(cls, data: Any) -> Any:
        # Index hits carry "objectID"; records from the REST API carry "id".
        # A null identity is left missing so validation rejects it.
        if not isinstance(data, dict):
            return data
        data = dict(data)
        identity = data.pop("objectID", None)
        if identity is None:
            identity = data.get("id")
        if identity is not None:
            data["id"] = str(identity)
        return data


class SearchPage(BaseModel):
    """Result of one fetch: the new records and the cursor for the next one."""

    model_config = ConfigDict(frozen=True)

    records: tuple[Any, ...] = ()
    page_index: int = Field(..., ge=0)
    next_page_index: int | None = None

    @classmethod
    def from_response(
        cls, records: Sequence[Any], page_index: int, total_pages: int
    ) -> "SearchPage":
        next_page_index = page_index + 1 if page_index < total_pages - 1 else None
        return cls(
            records=tuple(records),
            page_index=page_index,
            next_page_index=next_page_index,
        )


class SearchMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_hits: int = 0


class SearchError(BaseModel):
    """Failure recorded on the aggregate state."""

    model_config = ConfigDict(frozen=True)

    kind: FailureKind
    message: str
    status_code: int | None = None
    retryable: bool = False


class AggregateState(BaseModel):
    """Snapshot of everything fetched in the current search session."""

    model_config = ConfigDict(frozen=True)

    status: SearchStatus = SearchStatus.IDLE
    records: tuple[Any, ...] = ()
    total_hits: int = 0
    current_page: int = 0
    total_pages: int = 0
    error: SearchError | None = None

    @model_validator(mode="after")
    def error_matches_status(self) -> "AggregateState":
        if self.status == SearchStatus.ERROR and self.error is None:
            raise ValueError("An ERROR state must carry the error")
        if self.status != SearchStatus.ERROR and self.error is not None:
            raise ValueError(f"A {self.status.value} state cannot carry an error")
        return self

    @property
    def is_loading(self) -> bool:
        return self.status == SearchStatus.LOADING

    @property
    def last_error(self) -> str | None:
        return self.error.message if self.error else None

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages - 1

    @property
    def next_page_index(self) -> int | None:
        return self.current_page + 1 if self.has_next_page else None
