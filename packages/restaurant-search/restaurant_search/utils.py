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

import logging

from restaurant_search.clients import SearchClient
from restaurant_search.data_models.search import SearchDescriptor
from restaurant_search.data_models.settings import SearchSettings

logger = logging.getLogger(__name__)


async def check_search_endpoint(
    settings: SearchSettings, client: SearchClient | None = None
) -> int:
    """
    Checks the search endpoint by requesting a single hit.

    Args:
        settings: Search configuration to check.
        client: Optional client to use instead of one built from `settings`.

    Returns:
        The total hit count reported by the endpoint.

    Raises:
        NetworkFailure: If the endpoint cannot be reached.
        ServerFailure: If the endpoint answers with a non-2xx status.
        DecodeFailure: If the answer is not a search response.
    """
    probe = SearchDescriptor(page=0, hits_per_page=1)
    if client is not None:
        response = await client.fetch(probe)
    else:
        async with SearchClient(
            settings.search_url,
            passcode=settings.api_passcode,
            timeout=settings.timeout_seconds,
        ) as owned_client:
            response = await owned_client.fetch(probe)
    logger.info(
        "Search endpoint check successful: %s reports %d restaurants.",
        settings.search_url,
        response.nb_hits,
    )
    return response.nb_hits
