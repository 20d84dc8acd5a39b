"""
Shared fixtures: a scripted in-memory PriceSource and small builders.
"""
import logging
from typing import Dict, List, Optional

import pytest

from arb_scanner.config import ArbitrageConfig
from arb_scanner.models import AssetStatus, SharedPairGroup, StandardPair, StandardTicker
from arb_scanner.sources import PriceSource


class FakeSource(PriceSource):
    """
    PriceSource driven by plain dicts.

    tickers: symbol -> (bid, ask) or an Exception to raise
    statuses: asset -> AssetStatus, None, or an Exception to raise
    """
    def __init__(self, source_id: str, symbols: List[str] = (), tickers: Optional[Dict] = None,
                 statuses: Optional[Dict] = None, pairs_error: Optional[Exception] = None):
        self.source_id = source_id
        self.symbols = list(symbols)
        self.tickers = tickers or {}
        self.statuses = statuses or {}
        self.pairs_error = pairs_error
        self.ticker_calls: List[str] = []
        self.status_calls: List[str] = []

    async def fetch_all_pairs(self):
        if self.pairs_error:
            raise self.pairs_error
        return [make_pair(s, self.source_id) for s in self.symbols]

    async def fetch_ticker(self, pair):
        self.ticker_calls.append(pair.symbol)
        value = self.tickers.get(pair.symbol)
        if isinstance(value, Exception):
            raise value
        if value is None:
            return None
        bid, ask = value
        return StandardTicker(self.source_id, price=ask, bid=bid, ask=ask, raw={"s": pair.symbol})

    async def get_asset_status(self, asset):
        self.status_calls.append(asset)
        value = self.statuses.get(asset)
        if isinstance(value, Exception):
            raise value
        return value


def make_pair(symbol: str, source_id: str) -> StandardPair:
    base, quote = symbol.split("/")
    return StandardPair(symbol=symbol, base=base, quote=quote, source_id=source_id, raw={"symbol": symbol})


def make_group(symbol: str, *source_ids: str) -> SharedPairGroup:
    return SharedPairGroup(symbol, tuple((sid, make_pair(symbol, sid)) for sid in source_ids))


def status(deposit=(), withdraw=(), can_deposit=None, can_withdraw=None, raw=None) -> AssetStatus:
    return AssetStatus(
        can_deposit=bool(deposit) if can_deposit is None else can_deposit,
        can_withdraw=bool(withdraw) if can_withdraw is None else can_withdraw,
        deposit_networks=frozenset(deposit),
        withdraw_networks=frozenset(withdraw),
        raw=raw,
    )


@pytest.fixture
def arb_config():
    return ArbitrageConfig(min_profit_percentage=0.5, inter_group_delay_seconds=0)


@pytest.fixture
def test_logger():
    return logging.getLogger("arb_scanner.tests")
