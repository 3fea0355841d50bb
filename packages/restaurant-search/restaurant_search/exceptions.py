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
Failures raised by search transports and surfaced on the aggregate state.
"""

from restaurant_search.data_models.enums import FailureKind
from restaurant_search.data_models.search import SearchError


class SearchFailure(Exception):
    """Base class for every failure of a single search fetch."""

    kind: FailureKind
    retryable: bool = False

    def user_message(self) -> str:
        return f"Search error: {self}"

    def to_error(self) -> SearchError:
        return SearchError(
            kind=self.kind,
            message=self.user_message(),
            status_code=getattr(self, "status_code", None),
            retryable=self.retryable,
        )


class NetworkFailure(SearchFailure):
    """The request never reached the server or no response came back."""

    kind = FailureKind.NETWORK
    retryable = True

    def user_message(self) -> str:
        return f"Search error: could not reach the search service ({self})"


class ServerFailure(SearchFailure):
    """The server answered with a non-2xx status."""

    kind = FailureKind.SERVER

    def __init__(self, status_code: int, message: str | None = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"Search failed with status: {status_code}")

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status_code >= 500 or self.status_code == 429


class DecodeFailure(SearchFailure):
    """The response body did not match the expected shape."""

    kind = FailureKind.DECODE

    def user_message(self) -> str:
        return f"Search error: unexpected response from the search service ({self})"
