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
Pydantic models for configuring the search client.
"""

from pydantic import BaseModel, Field, computed_field, field_validator

from .search import DEFAULT_PAGE_SIZE


class SearchSettings(BaseModel):
    """Configuration for the restaurant search endpoint."""

    api_base_url: str = Field(description="Base URL of the restaurant API")
    api_passcode: str | None = Field(
        default=None,
        description="Value sent in the X-API-Passcode header"
    )
    search_path: str = Field(
        default="API/Algolia/Restaurants",
        description="Path of the search endpoint relative to the base URL"
    )
    page_size: int = Field(
        default=DEFAULT_PAGE_SIZE,
        ge=1,
        description="Hits requested per page"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single search request"
    )
    default_districts: list[str] | None = Field(
        default=None,
        description="District codes applied when a search names none"
    )

    @field_validator("api_base_url")
    @classmethod
    def require_http_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"api_base_url must be an http(s) URL, got '{v}'")
        return v

    @computed_field
    @property
    def search_url(self) -> str:
        """Full search endpoint URL, joined with a single slash."""
        return f"{self.api_base_url.rstrip('/')}/{self.search_path.lstrip('/')}"
