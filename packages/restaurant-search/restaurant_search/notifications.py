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
Broadcast channels for search updates.

Each channel keeps its own subscriber list so a consumer only receives the
payload it asked for. Emission is fire-and-forget: plain callables run inline,
coroutine functions are scheduled as tasks, and a subscriber that raises is
logged and skipped without affecting the others.
"""

import asyncio
import inspect
import itertools
import logging
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from restaurant_search.data_models.search import (
    AggregateState,
    SearchMetadata,
    SearchPage,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], Any]
Unsubscribe = Callable[[], None]


class Channel(Generic[T]):
    def __init__(self, name: str, tasks: set[asyncio.Task]) -> None:
        self.name = name
        self._subscribers: dict[int, Subscriber] = {}
        self._ids = itertools.count()
        self._tasks = tasks
        self._closed = False

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self, fn: Subscriber) -> Unsubscribe:
        """Registers `fn` for future emissions and returns its unsubscribe handle."""
        if self._closed:
            logger.warning("Subscribe on closed '%s' channel ignored", self.name)
            return lambda: None

        subscription_id = next(self._ids)
        self._subscribers[subscription_id] = fn

        def unsubscribe() -> None:
            self._subscribers.pop(subscription_id, None)

        return unsubscribe

    def emit(self, payload: T) -> None:
        if self._closed:
            logger.warning("Emit on closed '%s' channel dropped", self.name)
            return
        # Copy so subscribers can unsubscribe while being notified.
        for fn in list(self._subscribers.values()):
            try:
                result = fn(payload)
            except Exception:
                logger.exception("Subscriber %r on '%s' channel failed", fn, self.name)
                continue
            if inspect.isawaitable(result):
                self._schedule(fn, result)

    def close(self) -> None:
        self._subscribers.clear()
        self._closed = True

    def _schedule(self, fn: Subscriber, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "No running event loop for async subscriber %r on '%s' channel",
                fn,
                self.name,
            )
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        if exc := task.exception():
            logger.warning(
                "Async subscriber on '%s' channel failed: %s",
                self.name,
                exc,
                exc_info=exc,
            )


class NotificationHub:
    """
    Fans search updates out to independent channels.

    - list: the full accumulated sequence of records
    - page: only the newly fetched page and its cursor
    - metadata: the total hit count
    - state: an AggregateState snapshot after every transition

    Channels keep no history; a new subscriber only sees future emissions.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()
        self.list = Channel[tuple[Any, ...]]("list", self._tasks)
        self.page = Channel[SearchPage]("page", self._tasks)
        self.metadata = Channel[SearchMetadata]("metadata", self._tasks)
        self.state = Channel[AggregateState]("state", self._tasks)

    @property
    def channels(self) -> tuple[Channel, ...]:
        return (self.list, self.page, self.metadata, self.state)

    def publish_list(self, records: Sequence[Any]) -> None:
        self.list.emit(tuple(records))

    def publish_results(
        self,
        records: Sequence[Any],
        page: SearchPage,
        metadata: SearchMetadata,
    ) -> None:
        """Emits a successful fetch on list, page and metadata, in that order."""
        self.list.emit(tuple(records))
        self.page.emit(page)
        self.metadata.emit(metadata)

    def publish_state(self, state: AggregateState) -> None:
        self.state.emit(state)

    async def drain(self) -> None:
        """Waits for async subscribers scheduled so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        for channel in self.channels:
            channel.close()
