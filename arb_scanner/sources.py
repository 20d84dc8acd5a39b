# arb_scanner/sources.py
import asyncio
import logging
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

import ccxt.async_support as ccxt

from .models import AssetStatus, StandardPair, StandardTicker, make_symbol

# Unified spellings for the same transfer rail across exchanges
DEFAULT_NETWORK_ALIASES: Dict[str, str] = {
    "ETH": "ERC20",
    "ETHEREUM": "ERC20",
    "TRX": "TRC20",
    "TRON": "TRC20",
    "BSC": "BEP20",
    "BNB SMART CHAIN": "BEP20",
    "BNBSMARTCHAIN": "BEP20",
    "BEP20(BSC)": "BEP20",
    "SOL": "SOLANA",
    "MATIC": "POLYGON",
    "POLYGON POS": "POLYGON",
    "ARBONE": "ARBITRUM",
    "ARBITRUM ONE": "ARBITRUM",
    "ARB": "ARBITRUM",
    "OPTIMISM": "OP",
    "AVAX C-CHAIN": "AVAXC",
    "C-CHAIN": "AVAXC",
}


def normalize_network(name: str, aliases: Optional[Mapping[str, str]] = None) -> str:
    """
    Upper-cases a network name and maps known aliases to one identifier.
    """
    key = name.strip().upper()
    if aliases and key in aliases:
        return aliases[key]
    return DEFAULT_NETWORK_ALIASES.get(key, key)


class PriceSource:
    """
    Capability set of one price venue. Every call fails soft:
    an empty list or None is returned when the venue cannot answer.
    """
    source_id: str = ""

    async def fetch_all_pairs(self) -> List[StandardPair]:
        raise NotImplementedError

    async def fetch_ticker(self, pair: StandardPair) -> Optional[StandardTicker]:
        raise NotImplementedError

    async def get_asset_status(self, asset: str) -> Optional[AssetStatus]:
        raise NotImplementedError

    async def close(self):
        pass


class CcxtSource(PriceSource):
    """
    PriceSource backed by a ccxt async exchange client.
    The currency table is fetched once per source and shared by all lookups.
    """
    def __init__(self, source_id: str, client: Any, logger: Optional[logging.Logger] = None,
                 network_aliases: Optional[Mapping[str, str]] = None):
        self.source_id = source_id
        self.client = client
        self.logger = logger or logging.getLogger("arb_scanner")
        self.network_aliases = dict(DEFAULT_NETWORK_ALIASES)
        if network_aliases:
            self.network_aliases.update({k.upper(): v.upper() for k, v in network_aliases.items()})
        self._currencies: Optional[Dict[str, Any]] = None
        self._currencies_loaded = False
        self._currencies_lock = asyncio.Lock()

    async def fetch_all_pairs(self) -> List[StandardPair]:
        self.logger.info(f"Fetching pairs from {self.source_id}...")
        try:
            markets = await self.client.load_markets()
        except ccxt.BaseError as e:
            self._log_ccxt_error("load markets", e)
            return []

        pairs = []
        for market in (markets or {}).values():
            if not market.get('spot') or market.get('active') is False:
                continue
            base, quote = market.get('base'), market.get('quote')
            if not base or not quote:
                continue
            pairs.append(StandardPair(
                symbol=make_symbol(base, quote),
                base=base.upper(),
                quote=quote.upper(),
                source_id=self.source_id,
                raw=market,
            ))
        self.logger.info(f"Found {len(pairs)} spot pairs on {self.source_id}.")
        return pairs

    async def fetch_ticker(self, pair: StandardPair) -> Optional[StandardTicker]:
        api_symbol = pair.raw.get('symbol', pair.symbol) if isinstance(pair.raw, dict) else pair.symbol
        try:
            t = await self.client.fetch_ticker(api_symbol)
        except ccxt.BaseError as e:
            self._log_ccxt_error(f"fetch ticker {api_symbol}", e)
            return None

        # an empty side of the book is a 0 price; the detector skips it
        bid = t.get('bid') or 0.0
        ask = t.get('ask') or 0.0
        last = t.get('last')
        try:
            return StandardTicker(
                source_id=self.source_id,
                price=float(last if last is not None else (ask or bid)),
                bid=float(bid),
                ask=float(ask),
                raw=t.get('info', t),
            )
        except (TypeError, ValueError) as e:
            self.logger.warning(f"{self.source_id}: unparseable ticker for {api_symbol}: {e}")
            return None

    async def get_asset_status(self, asset: str) -> Optional[AssetStatus]:
        currencies = await self._load_currencies()
        if not currencies:
            return None

        currency = currencies.get(asset.upper())
        if currency is None:
            self.logger.debug(f"{self.source_id}: asset {asset} not listed")
            return None

        networks = currency.get('networks') or {}
        deposit_networks = self._networks_where(networks, 'deposit')
        withdraw_networks = self._networks_where(networks, 'withdraw')

        return AssetStatus(
            can_deposit=currency.get('deposit') is not False and len(deposit_networks) > 0,
            can_withdraw=currency.get('withdraw') is not False and len(withdraw_networks) > 0,
            deposit_networks=deposit_networks,
            withdraw_networks=withdraw_networks,
            raw=currency.get('info', currency),
        )

    def _networks_where(self, networks: Dict[str, Any], flag: str) -> FrozenSet[str]:
        names = set()
        for code, net in networks.items():
            if not net or not net.get(flag) or net.get('active') is False:
                continue
            names.add(normalize_network(net.get('network') or code, self.network_aliases))
        return frozenset(names)

    async def _load_currencies(self) -> Optional[Dict[str, Any]]:
        async with self._currencies_lock:
            if self._currencies_loaded:
                return self._currencies
            # one attempt per run, failures included
            self._currencies_loaded = True
            if not self.client.has.get('fetchCurrencies'):
                self.logger.warning(f"{self.source_id} does not expose currency status. Skipping wallet checks.")
                return None
            try:
                currencies = await self.client.fetch_currencies()
            except ccxt.BaseError as e:
                self._log_ccxt_error("fetch currencies", e)
                return None
            if not currencies:
                self.logger.warning(f"{self.source_id}: currency status unavailable (API keys configured?)")
                return None
            self._currencies = currencies
            return currencies

    def reset_cache(self):
        self._currencies = None
        self._currencies_loaded = False

    def _log_ccxt_error(self, action: str, e: Exception):
        name = self.source_id.upper()
        if isinstance(e, ccxt.PermissionDenied):
            self.logger.error(f"{name} | PERMISSION DENIED during {action}: key missing permissions or IP whitelist.")
        elif isinstance(e, ccxt.AuthenticationError):
            self.logger.error(f"{name} | AUTH FAILED during {action}: invalid API key or secret.")
        elif isinstance(e, ccxt.NetworkError):
            self.logger.warning(f"{name} | NETWORK ERROR during {action}: {e}")
        else:
            self.logger.error(f"{name} | EXCHANGE ERROR during {action}: {e}")

    async def close(self):
        await self.client.close()
