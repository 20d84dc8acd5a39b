# arb_scanner/pipeline.py
"""
Drives the detection stages over the shared groups, one group at a time.

Groups never overlap; the only concurrency is the fan-out inside a stage
(tickers of one group, the four status lookups of one candidate). A fixed
delay between groups throttles the outbound request rate.
"""
import asyncio
import logging
from typing import AsyncIterator, Callable, List, Mapping, Optional, Sequence

from .config import ArbitrageConfig
from .errors import ConfigError
from .models import Opportunity, SharedPairGroup
from .quotes import QuoteEnricher
from .sources import PriceSource
from .spread import detect_spreads
from .validation import ExecutabilityValidator

ProgressCallback = Callable[[int, int, str], None]

_END = object()


def select_window(groups: Sequence[SharedPairGroup], start: int = 0, end: Optional[int] = None) -> List[SharedPairGroup]:
    """Restricts a run to groups[start:end]."""
    if start < 0 or (end is not None and end < 0):
        raise ConfigError(f"window bounds must be non-negative, got start={start} end={end}")
    if end is not None and end < start:
        raise ConfigError(f"window end ({end}) is before start ({start})")
    return list(groups[start:end])


class ArbitragePipeline:
    def __init__(self, sources: Mapping[str, PriceSource], config: ArbitrageConfig,
                 logger: Optional[logging.Logger] = None, progress: Optional[ProgressCallback] = None):
        self.sources = dict(sources)
        self.config = config
        self.logger = logger or logging.getLogger("arb_scanner")
        self.progress = progress
        self.enricher = QuoteEnricher(self.sources, self.logger)
        self.validator = ExecutabilityValidator(self.sources, self.logger)
        self._stop = asyncio.Event()

    def stop(self):
        """Lets the current group finish, then ends the run."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    async def run(self, groups: Sequence[SharedPairGroup]) -> AsyncIterator[Opportunity]:
        """
        Yields validated opportunities in group order, then (i, j) order.
        """
        total = len(groups)
        delay = self.config.inter_group_delay_seconds

        for index, group in enumerate(groups):
            if self._stop.is_set():
                self.logger.info(f"Stop requested, {total - index} groups left unprocessed.")
                break
            if self.progress:
                self.progress(index, total, group.symbol)

            enriched = await self.enricher.enrich(group)
            if enriched is not None:
                for candidate in detect_spreads(enriched, self.config.min_profit_percentage):
                    opp = await self.validator.try_validate(candidate)
                    if opp is not None:
                        yield opp

            if delay > 0 and index < total - 1:
                await asyncio.sleep(delay)

        self.logger.info(f"Analysis of {total} pairs completed.")

    def stream(self, groups: Sequence[SharedPairGroup]) -> "OpportunityStream":
        return OpportunityStream(self, groups, maxsize=self.config.channel_size)


class OpportunityStream:
    """
    Single-pass channel of validated opportunities.

    A producer task drives the pipeline and pushes results onto a bounded
    queue; consumers pull with 'async for'. Producer errors are re-raised on
    the consumer side.
    """
    def __init__(self, pipeline: ArbitragePipeline, groups: Sequence[SharedPairGroup], maxsize: int = 16):
        self.pipeline = pipeline
        self.groups = list(groups)
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._producer: Optional[asyncio.Task] = None
        self._finished = False

    def stop(self):
        self.pipeline.stop()

    async def _produce(self):
        try:
            async for opp in self.pipeline.run(self.groups):
                await self._queue.put(opp)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self._queue.put(e)
            return
        await self._queue.put(_END)

    def __aiter__(self):
        if self._producer is not None or self._finished:
            raise RuntimeError("OpportunityStream can only be consumed once")
        self._producer = asyncio.create_task(self._produce())
        return self

    async def __anext__(self) -> Opportunity:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            await self._finish()
            raise StopAsyncIteration
        if isinstance(item, Exception):
            await self._finish()
            raise item
        return item

    async def _finish(self):
        self._finished = True
        if self._producer is not None:
            await self._producer

    async def aclose(self):
        """Abandons the run, including in-flight requests of the current group."""
        self._finished = True
        if self._producer is not None and not self._producer.done():
            self._producer.cancel()
            try:
                await self._producer
            except asyncio.CancelledError:
                pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
