import pytest
import ccxt.async_support as ccxt

from arb_scanner.config import ArbitrageConfig, ExchangeConfig, ScannerConfig
from arb_scanner.market_engine import MarketEngine
from arb_scanner.models import StandardPair
from arb_scanner.sources import CcxtSource, normalize_network

from .conftest import make_pair


class FakeClient:
    """Stands in for a ccxt async exchange."""
    def __init__(self, markets=None, tickers=None, currencies=None, has_currencies=True, errors=None):
        self.markets = markets or {}
        self.tickers = tickers or {}
        self.currencies = currencies
        self.has = {'fetchCurrencies': has_currencies}
        self.errors = errors or {}
        self.currency_calls = 0
        self.closed = False

    async def load_markets(self):
        if 'load_markets' in self.errors:
            raise self.errors['load_markets']
        return self.markets

    async def fetch_ticker(self, symbol):
        if 'fetch_ticker' in self.errors:
            raise self.errors['fetch_ticker']
        return self.tickers[symbol]

    async def fetch_currencies(self):
        self.currency_calls += 1
        if 'fetch_currencies' in self.errors:
            raise self.errors['fetch_currencies']
        return self.currencies

    async def close(self):
        self.closed = True


def spot(symbol, base, quote, **extra):
    market = {'symbol': symbol, 'base': base, 'quote': quote, 'spot': True, 'active': True}
    market.update(extra)
    return market


USDT_CURRENCY = {
    'id': 'USDT',
    'deposit': True,
    'withdraw': True,
    'info': {'coin': 'USDT'},
    'networks': {
        'ETH': {'network': 'ETH', 'deposit': True, 'withdraw': True, 'active': True},
        'TRX': {'network': 'TRX', 'deposit': True, 'withdraw': False, 'active': True},
        'SOL': {'network': 'SOL', 'deposit': True, 'withdraw': True, 'active': False},
    },
}


class TestNormalizeNetwork:
    def test_aliases_and_case(self):
        assert normalize_network("eth") == "ERC20"
        assert normalize_network(" Tron ") == "TRC20"
        assert normalize_network("BSC") == "BEP20"
        assert normalize_network("erc20") == "ERC20"
        assert normalize_network("unknownchain") == "UNKNOWNCHAIN"

    def test_custom_aliases_take_precedence(self):
        assert normalize_network("ETH", {"ETH": "ETHEREUM-MAINNET"}) == "ETHEREUM-MAINNET"


class TestCcxtSource:
    @pytest.mark.asyncio
    async def test_fetch_all_pairs_keeps_active_spot_markets(self):
        client = FakeClient(markets={
            'BTC/USDT': spot('BTC/USDT', 'BTC', 'USDT'),
            'ETH/USDT': spot('ETH/USDT', 'eth', 'usdt'),
            'OLD/USDT': spot('OLD/USDT', 'OLD', 'USDT', active=False),
            'BTC/USDT:USDT': spot('BTC/USDT:USDT', 'BTC', 'USDT', spot=False),
        })
        pairs = await CcxtSource("binance", client).fetch_all_pairs()

        assert [p.symbol for p in pairs] == ["BTC/USDT", "ETH/USDT"]
        assert pairs[1].base == "ETH"
        assert all(p.source_id == "binance" for p in pairs)

    @pytest.mark.asyncio
    async def test_fetch_all_pairs_fails_soft(self):
        client = FakeClient(errors={'load_markets': ccxt.NetworkError("unreachable")})
        assert await CcxtSource("binance", client).fetch_all_pairs() == []

    @pytest.mark.asyncio
    async def test_fetch_ticker_uses_exchange_symbol(self):
        client = FakeClient(tickers={'XBT/USDT': {'bid': 99.0, 'ask': 100.0, 'last': 99.5, 'info': {}}})
        pair = StandardPair("BTC/USDT", "BTC", "USDT", "kraken", raw={'symbol': 'XBT/USDT'})

        ticker = await CcxtSource("kraken", client).fetch_ticker(pair)

        assert (ticker.bid, ticker.ask, ticker.price) == (99.0, 100.0, 99.5)
        assert ticker.source_id == "kraken"

    @pytest.mark.asyncio
    async def test_fetch_ticker_missing_side_is_zero(self):
        client = FakeClient(tickers={'BTC/USDT': {'bid': None, 'ask': 100.0, 'last': None}})
        ticker = await CcxtSource("x", client).fetch_ticker(make_pair("BTC/USDT", "x"))

        assert (ticker.bid, ticker.ask, ticker.price) == (0.0, 100.0, 100.0)
        assert ticker.is_usable

    @pytest.mark.asyncio
    async def test_fetch_ticker_empty_book_is_unusable(self):
        client = FakeClient(tickers={'BTC/USDT': {'bid': None, 'ask': None, 'last': 99.5}})
        ticker = await CcxtSource("x", client).fetch_ticker(make_pair("BTC/USDT", "x"))

        assert not ticker.is_usable

    @pytest.mark.asyncio
    async def test_fetch_ticker_fails_soft(self):
        client = FakeClient(errors={'fetch_ticker': ccxt.ExchangeError("bad symbol")})
        assert await CcxtSource("x", client).fetch_ticker(make_pair("BTC/USDT", "x")) is None

    @pytest.mark.asyncio
    async def test_asset_status_normalizes_networks(self):
        client = FakeClient(currencies={'USDT': USDT_CURRENCY})
        status = await CcxtSource("x", client).get_asset_status("usdt")

        assert status.can_deposit and status.can_withdraw
        assert status.deposit_networks == frozenset({"ERC20", "TRC20"})
        assert status.withdraw_networks == frozenset({"ERC20"})
        assert status.raw == {'coin': 'USDT'}

    @pytest.mark.asyncio
    async def test_asset_level_flag_overrides_networks(self):
        currency = dict(USDT_CURRENCY, withdraw=False)
        status = await CcxtSource("x", FakeClient(currencies={'USDT': currency})).get_asset_status("USDT")

        assert status.can_withdraw is False
        assert status.can_deposit is True

    @pytest.mark.asyncio
    async def test_currencies_fetched_once(self):
        client = FakeClient(currencies={'USDT': USDT_CURRENCY})
        source = CcxtSource("x", client)

        await source.get_asset_status("USDT")
        await source.get_asset_status("BTC")
        assert client.currency_calls == 1

        source.reset_cache()
        await source.get_asset_status("USDT")
        assert client.currency_calls == 2

    @pytest.mark.asyncio
    async def test_unlisted_asset_is_none(self):
        source = CcxtSource("x", FakeClient(currencies={'USDT': USDT_CURRENCY}))
        assert await source.get_asset_status("DOGE") is None

    @pytest.mark.asyncio
    async def test_status_unavailable_is_none(self):
        no_support = CcxtSource("x", FakeClient(has_currencies=False))
        denied = CcxtSource("y", FakeClient(errors={'fetch_currencies': ccxt.PermissionDenied("ip")}))

        assert await no_support.get_asset_status("USDT") is None
        assert await denied.get_asset_status("USDT") is None

    @pytest.mark.asyncio
    async def test_failed_fetch_is_attempted_once(self):
        client = FakeClient(errors={'fetch_currencies': ccxt.RequestTimeout("slow")})
        source = CcxtSource("x", client)

        assert await source.get_asset_status("USDT") is None
        assert await source.get_asset_status("BTC") is None
        assert client.currency_calls == 1

        source.reset_cache()
        await source.get_asset_status("USDT")
        assert client.currency_calls == 2

    @pytest.mark.asyncio
    async def test_close(self):
        client = FakeClient()
        await CcxtSource("x", client).close()
        assert client.closed


class TestMarketEngine:
    @pytest.mark.asyncio
    async def test_unknown_exchange_is_skipped(self):
        config = ScannerConfig(
            arbitrage=ArbitrageConfig(min_profit_percentage=0.5),
            exchanges=[
                ExchangeConfig(name="binance"),
                ExchangeConfig(name="not_an_exchange"),
                ExchangeConfig(name="kraken", enabled=False),
            ],
        )
        engine = MarketEngine(config)
        try:
            sources = await engine.initialize()
            assert [s.source_id for s in sources] == ["binance"]
            assert isinstance(sources[0].client, ccxt.binance)
        finally:
            await engine.shutdown()
        assert engine.sources == {}
