# arb_scanner/market_engine.py
import logging
from typing import Dict, List, Optional

import ccxt.async_support as ccxt

from .config import ScannerConfig
from .sources import CcxtSource


class MarketEngine:
    """
    Manages REST connections to the configured exchanges.
    Builds one ccxt client per exchange and exposes each as a CcxtSource.
    """
    def __init__(self, config: ScannerConfig, logger: Optional[logging.Logger] = None):
        self.cfg = config
        self.logger = logger or logging.getLogger("arb_scanner")
        self.sources: Dict[str, CcxtSource] = {}

    async def initialize(self) -> List[CcxtSource]:
        """
        Creates the exchange clients. Unknown exchange ids are reported and skipped;
        credentials are optional (only wallet status checks need them).
        """
        timeout = self.cfg.system.network_timeout_ms
        sandbox = self.cfg.system.environment == 'testnet'

        for ex_cfg in self.cfg.enabled_exchanges:
            name = ex_cfg.name
            ex_class = getattr(ccxt, name, None)
            if ex_class is None:
                self.logger.critical(f"   ❌ {name.upper():<10} | UNKNOWN EXCHANGE: not supported by ccxt.")
                continue

            params = {
                'timeout': timeout,
                'enableRateLimit': True,
                'options': {'defaultType': 'spot'},
            }
            if ex_cfg.has_credentials:
                params['apiKey'] = ex_cfg.api_key
                params['secret'] = ex_cfg.secret
                if ex_cfg.password:
                    params['password'] = ex_cfg.password  # OKX/KuCoin/Bitget require a passphrase

            client = ex_class(params)
            if sandbox:
                try:
                    client.set_sandbox_mode(True)
                except ccxt.NotSupported:
                    self.logger.critical(f"   ❌ {name.upper():<10} | NO TESTNET: sandbox mode not available.")
                    await client.close()
                    continue

            self.sources[name] = CcxtSource(name, client, self.logger, ex_cfg.network_aliases)
            auth = "OK" if ex_cfg.has_credentials else "PUBLIC ONLY"
            self.logger.info(f"   ✅ {name.upper():<10} | Auth: {auth}")

        return list(self.sources.values())

    async def shutdown(self):
        """
        Closes all exchange connections gracefully.
        """
        for source in self.sources.values():
            await source.close()
        self.sources.clear()
