# arb_scanner/pairs.py
import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .config import ArbitrageConfig
from .models import SharedPairGroup, StandardPair
from .sources import PriceSource

SourcePairs = Tuple[str, List[StandardPair]]


def resolve_shared_pairs(source_pairs: Sequence[SourcePairs], config: ArbitrageConfig) -> List[SharedPairGroup]:
    """
    Groups pairs by symbol and keeps the symbols listed on at least two sources.

    Pairs whose quote asset is outside a non-empty quote_assets_filter are dropped
    before grouping. Groups come out in first-seen symbol order, members in source
    order; a source listing the same symbol twice counts once.
    """
    quote_filter = config.quote_assets_filter
    by_symbol: Dict[str, Dict[str, StandardPair]] = {}

    for source_id, pairs in source_pairs:
        for pair in pairs:
            if quote_filter and pair.quote not in quote_filter:
                continue
            members = by_symbol.setdefault(pair.symbol, {})
            members.setdefault(source_id, pair)

    return [
        SharedPairGroup(symbol=symbol, members=tuple(members.items()))
        for symbol, members in by_symbol.items()
        if len(members) >= 2
    ]


class PairResolver:
    """
    Collects the pair listings of every source and resolves the shared symbols.
    """
    def __init__(self, config: ArbitrageConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger("arb_scanner")

    async def fetch_all(self, sources: Sequence[PriceSource]) -> List[SourcePairs]:
        results = await asyncio.gather(*(s.fetch_all_pairs() for s in sources), return_exceptions=True)

        listings = []
        for source, res in zip(sources, results):
            if isinstance(res, BaseException):
                # sources should fail soft; treat a leak the same way
                self.logger.error(f"{source.source_id}: pair listing failed: {res}")
                res = []
            listings.append((source.source_id, list(res or [])))
        return listings

    def resolve(self, source_pairs: Sequence[SourcePairs]) -> List[SharedPairGroup]:
        groups = resolve_shared_pairs(source_pairs, self.config)
        self.logger.info(f"{len(groups)} shared pair combinations found for analysis.")
        return groups
