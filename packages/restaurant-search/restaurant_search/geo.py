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
Position sources and distance helpers for "nearby" searches.
"""

import logging
import math
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from restaurant_search.data_models.search import (
    DEFAULT_PAGE_SIZE,
    GeoFilter,
    SearchIntent,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000.0
DEFAULT_RADIUS_M = 1_000


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


@runtime_checkable
class GeoProvider(Protocol):
    async def current_position(self) -> GeoPoint | None:
        """Returns the device position, or None when it is unavailable."""
        ...


class StaticGeoProvider:
    """Provider that always reports the same position."""

    def __init__(self, point: GeoPoint | None) -> None:
        self.point = point

    async def current_position(self) -> GeoPoint | None:
        return self.point


def distance_between(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in meters (haversine)."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.longitude - a.longitude)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def format_distance(distance_m: float) -> str:
    """
    Formats a distance for display.

    Examples:
        >>> format_distance(250.4)
        '250m'

        >>> format_distance(2499)
        '2.5km'
    """
    if distance_m < 1000:
        return f"{round(distance_m)}m"
    return f"{distance_m / 1000:.1f}km"


async def nearby_intent(
    provider: GeoProvider,
    radius_m: int = DEFAULT_RADIUS_M,
    *,
    query: str = "",
    keywords: Iterable[str] = (),
    page_size: int = DEFAULT_PAGE_SIZE,
) -> SearchIntent | None:
    """Fresh intent around the provider's position, or None without a position."""
    point = await provider.current_position()
    if point is None:
        logger.info("No position available, nearby search skipped")
        return None
    return SearchIntent.fresh(
        query,
        keywords=keywords,
        geo=GeoFilter(
            latitude=point.latitude, longitude=point.longitude, radius_m=radius_m
        ),
        page_size=page_size,
    )
