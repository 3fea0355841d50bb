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
Clients module for talking to the restaurant search endpoint.
Provides the transport protocol the coordinator depends on, the HTTP
implementation of it, and the default decoder for search hits.
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import ValidationError

from restaurant_search.data_models.search import (
    Restaurant,
    SearchDescriptor,
    SearchResponse,
)
from restaurant_search.data_models.settings import SearchSettings
from restaurant_search.exceptions import DecodeFailure, NetworkFailure, ServerFailure

logger = logging.getLogger(__name__)

RecordDecoder = Callable[[dict[str, Any]], Any]


@runtime_checkable
class SearchTransport(Protocol):
    """Anything that can execute a search descriptor."""

    async def fetch(self, descriptor: SearchDescriptor) -> SearchResponse:
        """
        Executes one search request.

        Raises:
            NetworkFailure: The request did not complete (including timeouts).
            ServerFailure: The server answered with a non-2xx status.
            DecodeFailure: The body is not a search response.
        """
        ...


def decode_restaurant(raw: dict[str, Any]) -> Restaurant:
    """Decodes one search hit, raising DecodeFailure when it has no identity."""
    try:
        return Restaurant.model_validate(raw)
    except ValidationError as e:
        raise DecodeFailure(
            f"hit could not be decoded: {e.error_count()} validation error(s)"
        ) from e


class SearchClient:
    def __init__(
        self,
        search_url: str,
        passcode: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the SearchClient.

        Args:
            search_url: Full URL of the search endpoint
            passcode: Optional value for the X-API-Passcode header
            timeout: Request timeout in seconds, ignored when `client` is given
            client: Pre-configured AsyncClient. The caller keeps ownership of it.
        """
        if not search_url:
            raise ValueError("Must specify search_url")

        self.search_url = search_url
        self.passcode = passcode
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.passcode:
            headers["X-API-Passcode"] = self.passcode
        return headers

    async def fetch(self, descriptor: SearchDescriptor) -> SearchResponse:
        params = descriptor.to_query_params()
        logger.debug("Searching %s with %s", self.search_url, params)

        try:
            response = await self._client.get(
                self.search_url, params=params, headers=self._headers()
            )
        except httpx.RequestError as e:
            raise NetworkFailure(str(e) or type(e).__name__) from e

        if not response.is_success:
            raise ServerFailure(response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise DecodeFailure(f"response body is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise DecodeFailure(
                f"expected a JSON object, got {type(data).__name__}"
            )

        try:
            return SearchResponse.model_validate(data)
        except ValidationError as e:
            raise DecodeFailure(
                f"response does not match the search schema: {e.error_count()} "
                "validation error(s)"
            ) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SearchClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def create_search_client(settings: SearchSettings) -> SearchClient:
    """Factory function to create a SearchClient from settings."""
    return SearchClient(
        search_url=settings.search_url,
        passcode=settings.api_passcode,
        timeout=settings.timeout_seconds,
    )
