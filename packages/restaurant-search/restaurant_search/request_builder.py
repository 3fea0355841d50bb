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
Translates search intents into the descriptors sent to the search endpoint.
"""

from collections.abc import Iterable

from restaurant_search.data_models.search import (
    GeoFilter,
    SearchDescriptor,
    SearchIntent,
)

# Wire-format separator for multi-valued filters, shared with the endpoint.
FILTER_SEPARATOR = ","


def join_codes(codes: Iterable[str]) -> str | None:
    """
    Joins filter codes into a single token.

    Codes are stripped and sorted so the same set always encodes the same way.
    Returns None when nothing is left, so the parameter is omitted.
    """
    cleaned = sorted({code.strip() for code in codes if code and code.strip()})
    if not cleaned:
        return None
    return FILTER_SEPARATOR.join(cleaned)


def format_lat_lng(geo: GeoFilter) -> str:
    return f"{geo.latitude},{geo.longitude}"


def build_descriptor(intent: SearchIntent) -> SearchDescriptor:
    """Builds the wire descriptor for an intent. Pure and deterministic."""
    return SearchDescriptor(
        query=intent.query if intent.query.strip() else None,
        districts=join_codes(intent.districts),
        keywords=join_codes(intent.keywords),
        language=intent.language or None,
        page=intent.page,
        hits_per_page=intent.page_size,
        around_lat_lng=format_lat_lng(intent.geo) if intent.geo else None,
        around_radius=intent.geo.radius_m if intent.geo else None,
    )
