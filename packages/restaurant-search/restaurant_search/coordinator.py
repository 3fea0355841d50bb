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
Search session state machine.

The coordinator is the only writer of the aggregate state. It dispatches
fetches to a transport, merges the returned pages and broadcasts the result
through a NotificationHub.
"""

import asyncio
import itertools
import logging
from collections.abc import Iterable
from typing import Any

from restaurant_search.clients import (
    RecordDecoder,
    SearchTransport,
    create_search_client,
    decode_restaurant,
)
from restaurant_search.data_models.enums import SearchStatus
from restaurant_search.data_models.search import (
    AggregateState,
    SearchDescriptor,
    SearchIntent,
    SearchMetadata,
    SearchPage,
    SearchResponse,
)
from restaurant_search.data_models.settings import SearchSettings
from restaurant_search.exceptions import DecodeFailure, NetworkFailure, SearchFailure
from restaurant_search.notifications import NotificationHub, Subscriber, Unsubscribe
from restaurant_search.request_builder import build_descriptor

logger = logging.getLogger(__name__)


class SearchCoordinator:
    """
    Owns one search session: the accumulated records, the paging cursor and
    the loading/error status.

    Every dispatch takes the next number from a monotonically increasing
    request counter, and every fresh search (or `clear()`) opens a new
    session generation. A fetch outcome is discarded when its generation is
    no longer current, and a fresh search outcome is also discarded once any
    later request has been dispatched. The last fresh search made wins, not
    the last response to arrive, while overlapping load-more fetches of the
    same session all land.

    Records are kept per page index and joined in page order, so load-more
    pages that arrive out of order still accumulate in page order.
    """

    def __init__(
        self,
        transport: SearchTransport,
        decoder: RecordDecoder = decode_restaurant,
        hub: NotificationHub | None = None,
        owns_transport: bool = False,
    ) -> None:
        self._transport = transport
        self._owns_transport = owns_transport
        self._decode = decoder
        self.hub = hub or NotificationHub()
        self._state = AggregateState()
        self._request_seq = 0
        self._generation = 0
        self._session_intent: SearchIntent | None = None
        self._pages: dict[int, tuple[Any, ...]] = {}
        self._in_flight: set[int] = set()
        self._tasks: set[asyncio.Task] = set()

    def current_state(self) -> AggregateState:
        """Snapshot of the aggregate state."""
        return self._state

    @property
    def latest_request_id(self) -> int:
        return self._request_seq

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe_list(self, fn: Subscriber) -> Unsubscribe:
        return self.hub.list.subscribe(fn)

    def subscribe_page(self, fn: Subscriber) -> Unsubscribe:
        return self.hub.page.subscribe(fn)

    def subscribe_metadata(self, fn: Subscriber) -> Unsubscribe:
        return self.hub.metadata.subscribe(fn)

    def subscribe_state(self, fn: Subscriber) -> Unsubscribe:
        return self.hub.state.subscribe(fn)

    def search(self, intent: SearchIntent) -> asyncio.Task:
        """
        Dispatches `intent` and returns immediately.

        The outcome is observed through the channels and `current_state()`.
        The returned task completes once the outcome has been applied or
        discarded; awaiting it is optional.

        Raises:
            RuntimeError: If called without a running event loop.
        """
        loop = asyncio.get_running_loop()
        descriptor = build_descriptor(intent)

        self._request_seq += 1
        request_id = self._request_seq
        self._session_intent = intent

        if intent.is_fresh:
            self._start_generation()
            self._replace(
                status=SearchStatus.LOADING,
                records=(),
                total_hits=0,
                current_page=0,
                total_pages=0,
                error=None,
            )
            self.hub.publish_list(self._state.records)
        else:
            self._replace(status=SearchStatus.LOADING, error=None)
        self._in_flight.add(request_id)
        self.hub.publish_state(self._state)

        logger.info(
            "Dispatching %s search #%d (page %d, generation %d)",
            intent.kind.value,
            request_id,
            intent.page,
            self._generation,
        )
        task = loop.create_task(
            self._fetch(request_id, self._generation, intent, descriptor)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def load_more(self) -> asyncio.Task | None:
        """
        Dispatches the next page of the current session.

        Returns None without dispatching when nothing is loaded yet, a fetch
        is in flight, or the server reported no further page.
        """
        if self._session_intent is None or self._state.is_loading:
            return None
        next_page = self._state.next_page_index
        if next_page is None:
            return None
        return self.search(self._session_intent.next_page(next_page))

    def clear(self) -> None:
        """Resets to an empty, idle session without fetching."""
        # A new generation keeps in-flight responses from refilling the session.
        self._request_seq += 1
        self._start_generation()
        self._session_intent = None
        self._state = AggregateState()
        self.hub.publish_list(self._state.records)
        self.hub.publish_state(self._state)
        logger.info("Search results cleared")

    def clear_error(self) -> None:
        if self._state.status != SearchStatus.ERROR:
            return
        status = SearchStatus.LOADED if self._state.records else SearchStatus.IDLE
        self._replace(status=status, error=None)
        self.hub.publish_state(self._state)

    async def wait_idle(self) -> None:
        """Waits until every dispatched fetch has been applied or discarded."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.wait_idle()
        await self.hub.drain()
        self.hub.close()
        if self._owns_transport:
            await self._transport.aclose()

    def _start_generation(self) -> None:
        self._generation += 1
        self._pages = {}
        self._in_flight = set()

    async def _fetch(
        self,
        request_id: int,
        generation: int,
        intent: SearchIntent,
        descriptor: SearchDescriptor,
    ) -> None:
        try:
            response = await self._transport.fetch(descriptor)
            records = self._decode_hits(response.hits)
        except SearchFailure as failure:
            self._apply_failure(request_id, generation, intent, failure)
        except Exception as e:  # noqa: BLE001
            logger.exception("Transport raised an unclassified error")
            self._apply_failure(
                request_id,
                generation,
                intent,
                NetworkFailure(str(e) or type(e).__name__),
            )
        else:
            self._apply_success(request_id, generation, intent, response, records)

    def _decode_hits(self, hits: Iterable[dict[str, Any]]) -> list[Any]:
        records = []
        for hit in hits:
            try:
                records.append(self._decode(hit))
            except SearchFailure:
                raise
            except Exception as e:  # noqa: BLE001
                raise DecodeFailure(f"hit could not be decoded: {e}") from e
        return records

    def _is_stale(self, request_id: int, generation: int, intent: SearchIntent) -> bool:
        self._in_flight.discard(request_id)
        if generation != self._generation:
            logger.debug(
                "Discarding outcome of search #%d from generation %d, current is %d",
                request_id,
                generation,
                self._generation,
            )
            return True
        if intent.is_fresh and request_id != self._request_seq:
            logger.debug(
                "Discarding outcome of fresh search #%d, latest is #%d",
                request_id,
                self._request_seq,
            )
            return True
        return False

    def _apply_success(
        self,
        request_id: int,
        generation: int,
        intent: SearchIntent,
        response: SearchResponse,
        records: list[Any],
    ) -> None:
        if self._is_stale(request_id, generation, intent):
            return

        # Trust the page index the server reports over the one requested.
        page = SearchPage.from_response(records, response.page, response.nb_pages)
        if intent.is_fresh:
            self._pages = {}
        self._pages[page.page_index] = page.records
        merged = tuple(
            itertools.chain.from_iterable(
                self._pages[index] for index in sorted(self._pages)
            )
        )

        self._replace(
            status=SearchStatus.LOADING if self._in_flight else SearchStatus.LOADED,
            records=merged,
            total_hits=response.nb_hits,
            current_page=max(self._pages),
            total_pages=response.nb_pages,
            error=None,
        )
        logger.info(
            "Got %d results, page %d of %d, %d total hits",
            len(page.records),
            response.page,
            response.nb_pages,
            response.nb_hits,
        )

        self.hub.publish_results(
            self._state.records,
            page,
            SearchMetadata(total_hits=self._state.total_hits),
        )
        self.hub.publish_state(self._state)

    def _apply_failure(
        self,
        request_id: int,
        generation: int,
        intent: SearchIntent,
        failure: SearchFailure,
    ) -> None:
        if self._is_stale(request_id, generation, intent):
            return

        error = failure.to_error()
        if intent.is_fresh:
            self._pages = {}
            self._replace(
                status=SearchStatus.ERROR,
                records=(),
                total_hits=0,
                current_page=0,
                total_pages=0,
                error=error,
            )
        else:
            self._replace(status=SearchStatus.ERROR, error=error)
        logger.error("Search #%d failed: %s", request_id, error.message)

        self.hub.publish_list(self._state.records)
        self.hub.publish_state(self._state)

    def _replace(self, **changes: Any) -> None:
        fields = {name: getattr(self._state, name) for name in AggregateState.model_fields}
        fields.update(changes)
        self._state = AggregateState(**fields)


def create_coordinator(settings: SearchSettings) -> SearchCoordinator:
    """Factory function wiring an HTTP search client into a coordinator."""
    return SearchCoordinator(
        transport=create_search_client(settings), owns_transport=True
    )
