# arb_scanner/quotes.py
import asyncio
import logging
from typing import Dict, Mapping, Optional

from .models import EnrichedGroup, SharedPairGroup, StandardTicker
from .sources import PriceSource


class QuoteEnricher:
    """
    Attaches a live ticker from every source offering a shared symbol.

    Fail-open: a source whose ticker request raises or comes back empty is
    left out of this group only. The group survives with two usable tickers.
    """
    def __init__(self, sources: Mapping[str, PriceSource], logger: Optional[logging.Logger] = None):
        self.sources = sources
        self.logger = logger or logging.getLogger("arb_scanner")

    async def enrich(self, group: SharedPairGroup) -> Optional[EnrichedGroup]:
        members = [(sid, pair) for sid, pair in group.members if sid in self.sources]
        results = await asyncio.gather(
            *(self.sources[sid].fetch_ticker(pair) for sid, pair in members),
            return_exceptions=True,
        )

        tickers: Dict[str, StandardTicker] = {}
        for (source_id, _), res in zip(members, results):
            if isinstance(res, BaseException):
                self.logger.debug(f"{group.symbol}: ticker from {source_id} failed: {res}")
                continue
            if res is None or not res.is_usable:
                self.logger.debug(f"{group.symbol}: no usable ticker from {source_id}")
                continue
            tickers[source_id] = res

        if len(tickers) < 2:
            return None
        return EnrichedGroup(group=group, tickers=tickers)
