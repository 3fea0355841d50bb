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
Global pytest configuration and fixtures.

Pytest automatically discovers and loads this file. Fixtures defined here are
available to all tests in this directory and its subdirectories without
needing to import them explicitly.
"""

import asyncio
import os
from unittest.mock import patch

import pytest
from restaurant_search.data_models.search import SearchDescriptor, SearchResponse


@pytest.fixture(autouse=True)
def clean_env():
    """
    Automatically clear environment variables for all tests to ensure
    tests are hermetic and don't depend on the host environment.
    """
    with patch.dict(os.environ, {}, clear=True):
        yield


@pytest.fixture(autouse=True)
def mock_load_dotenv():
    """
    Automatically mock load_dotenv for all tests to prevent
    loading environment variables from local .env files.
    """
    with patch("restaurant_search.config.load_dotenv"):
        yield


class ControlledTransport:
    """
    Transport whose fetches stay pending until the test resolves them,
    so tests decide the order in which responses arrive.
    """

    def __init__(self) -> None:
        self.descriptors: list[SearchDescriptor] = []
        self.futures: list[asyncio.Future] = []

    async def fetch(self, descriptor: SearchDescriptor) -> SearchResponse:
        future = asyncio.get_running_loop().create_future()
        self.descriptors.append(descriptor)
        self.futures.append(future)
        return await future

    async def wait_for_calls(self, count: int) -> None:
        for _ in range(100):
            if len(self.futures) >= count:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"expected {count} fetches, saw {len(self.futures)}")

    def respond(self, index: int, response: SearchResponse) -> None:
        self.futures[index].set_result(response)

    def fail(self, index: int, error: Exception) -> None:
        self.futures[index].set_exception(error)


@pytest.fixture
def controlled_transport():
    return ControlledTransport()


@pytest.fixture
def make_response():
    """Builds a SearchResponse whose hits are identified by `ids`."""

    def _make(ids, page=0, nb_pages=1, nb_hits=None):
        return SearchResponse.model_validate(
            {
                "hits": [{"objectID": hit_id, "Name_EN": f"Restaurant {hit_id}"} for hit_id in ids],
                "nbHits": len(ids) if nb_hits is None else nb_hits,
                "page": page,
                "nbPages": nb_pages,
                "hitsPerPage": max(len(ids), 1),
            }
        )

    return _make
