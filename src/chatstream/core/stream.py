"""Drive a provider normalizer over a stream of raw fragments."""

from __future__ import annotations

import asyncio
import codecs
import inspect
import logging
from collections import deque
from typing import Any, AsyncIterable, AsyncIterator, Deque, Iterable, List, Optional, Union

from ..normalizers.base import ProviderNormalizer
from .context import NormalizerContext
from .events import ChatEvent, ChatEventType

LOGGER = logging.getLogger(__name__)

FragmentSource = Union[Iterable[Any], AsyncIterable[Any]]


class LineBuffer:
    """Split raw process output into complete lines.

    Chunks may end mid-line (or mid multi-byte character when fed ``bytes``);
    the incomplete tail is held back until the next chunk or :meth:`flush`.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)()
        self._leftover = ""

    def feed(self, chunk: Union[str, bytes]) -> List[str]:
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decoder.decode(bytes(chunk))
        self._leftover += chunk

        lines: List[str] = []
        while True:
            index = self._leftover.find("\n")
            if index == -1:
                break
            lines.append(self._leftover[:index])
            self._leftover = self._leftover[index + 1:]
        return lines

    def flush(self) -> Optional[str]:
        """Return the remaining partial line, if it holds anything but whitespace."""

        remaining = self._leftover + self._decoder.decode(b"", final=True)
        self._leftover = ""
        remaining = remaining.strip()
        return remaining or None


async def iter_lines(chunks: FragmentSource) -> AsyncIterator[str]:
    """Yield complete lines from raw stdout chunks, then any trailing partial line."""

    buffer = LineBuffer()
    async for chunk in _aiter(chunks):
        for line in buffer.feed(chunk):
            yield line

    remaining = buffer.flush()
    if remaining is not None:
        yield remaining


async def _aiter(source: FragmentSource) -> AsyncIterator[Any]:
    if hasattr(source, "__aiter__"):
        async for item in source:  # type: ignore[union-attr]
            yield item
        return

    for item in source:  # type: ignore[union-attr]
        await asyncio.sleep(0)
        yield item


class NormalizedEventStream(AsyncIterator[ChatEvent]):
    """Async iterator of canonical events for one response stream.

    Each fragment pulled from ``source`` is normalized in arrival order and the
    resulting events are handed out one at a time. Nothing is reordered. A
    fatal normalizer error closes the stream and propagates to the consumer.
    """

    def __init__(
        self,
        source: FragmentSource,
        normalizer: ProviderNormalizer,
        context: NormalizerContext,
    ) -> None:
        self._source = source
        self._iterator = _aiter(source)
        self._normalizer = normalizer
        self._context = context
        self._buffer: Deque[ChatEvent] = deque()
        self._fragments = 0
        self._closed = False
        self._close_lock = asyncio.Lock()

    def __aiter__(self) -> NormalizedEventStream:
        return self

    async def __anext__(self) -> ChatEvent:
        while not self._buffer:
            if self._closed:
                raise StopAsyncIteration

            try:
                fragment = await self._iterator.__anext__()
            except StopAsyncIteration:
                await self.close()
                raise

            self._fragments += 1
            try:
                events = self._normalizer.normalize(fragment, self._context)
            except Exception:
                LOGGER.debug(
                    "Normalizer %s failed on fragment %d",
                    self._normalizer.provider,
                    self._fragments,
                )
                await self.close()
                raise
            self._buffer.extend(events)

        return self._buffer.popleft()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def fragments_seen(self) -> int:
        """Number of raw fragments consumed so far."""

        return self._fragments

    async def close(self) -> None:
        """Stop consuming the source and drop any buffered events."""

        async with self._close_lock:
            if self._closed:
                return

            self._closed = True
            self._buffer.clear()
            LOGGER.info(
                "Closed %s stream for response %s after %d fragments",
                self._normalizer.provider,
                self._context.response_id,
                self._fragments,
            )
            await _close_source(self._iterator)
            await _close_source(self._source)

    async def aclose(self) -> None:
        await self.close()


async def _close_source(source: Any) -> None:
    for closer_name in ("aclose", "close"):
        closer = getattr(source, closer_name, None)
        if closer is None or not callable(closer):
            continue
        result = closer()
        if inspect.isawaitable(result):
            await result
        return


async def replay_stream(stream: NormalizedEventStream) -> List[ChatEvent]:
    """Collect all events emitted by a normalized stream."""

    events: List[ChatEvent] = []
    try:
        async for event in stream:
            events.append(event)
    finally:
        await stream.close()
    return events


def collect_text(events: Iterable[ChatEvent]) -> str:
    """Return the assistant text described by ``events``.

    The last ``assistant_done`` wins; without one the ``assistant_chunk``
    deltas are concatenated.
    """

    fragments: List[str] = []
    final_text: Optional[str] = None
    for event in events:
        if event.type is ChatEventType.ASSISTANT_CHUNK:
            fragments.append(event.payload.text)
        elif event.type is ChatEventType.ASSISTANT_DONE:
            final_text = event.payload.text

    if final_text is None:
        return "".join(fragments)
    return final_text


__all__ = [
    "FragmentSource",
    "LineBuffer",
    "NormalizedEventStream",
    "collect_text",
    "iter_lines",
    "replay_stream",
]
