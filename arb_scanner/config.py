# arb_scanner/config.py
import os
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

import yaml

from .errors import ConfigError

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_INTER_GROUP_DELAY = 0.03
DEFAULT_DATABASE = "db/db.json"
DEFAULT_AUDIT_LOG = "logs/opportunities.csv"
DEFAULT_API_HOST = "0.0.0.0"
DEFAULT_API_PORT = 8000


@dataclass(frozen=True, slots=True)
class ArbitrageConfig:
    """
    Settings consumed by the detection pipeline.
    An empty quote_assets_filter means every quote asset is considered.
    """
    min_profit_percentage: float
    quote_assets_filter: FrozenSet[str] = frozenset()
    start_index: int = 0
    end_index: Optional[int] = None
    inter_group_delay_seconds: float = DEFAULT_INTER_GROUP_DELAY
    channel_size: int = 16

    def __post_init__(self):
        if self.min_profit_percentage < 0:
            raise ConfigError(f"arbitrage.min_profit_percentage must be >= 0, got {self.min_profit_percentage}")
        if self.inter_group_delay_seconds < 0:
            raise ConfigError("arbitrage.inter_group_delay_seconds must be >= 0")
        if self.channel_size < 1:
            raise ConfigError("arbitrage.channel_size must be >= 1")


@dataclass(frozen=True, slots=True)
class ExchangeConfig:
    name: str
    api_key: str = ""
    secret: str = ""
    password: str = ""
    enabled: bool = True
    network_aliases: Dict[str, str] = field(default_factory=dict)

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.secret)


@dataclass(frozen=True, slots=True)
class SystemConfig:
    environment: str = "live"
    log_level: str = "INFO"
    network_timeout_ms: int = 10000


@dataclass(frozen=True, slots=True)
class StorageConfig:
    database: str = DEFAULT_DATABASE
    audit_log: str = DEFAULT_AUDIT_LOG


@dataclass(frozen=True, slots=True)
class ApiConfig:
    host: str = DEFAULT_API_HOST
    port: int = DEFAULT_API_PORT


@dataclass(frozen=True, slots=True)
class ScannerConfig:
    arbitrage: ArbitrageConfig
    exchanges: List[ExchangeConfig]
    system: SystemConfig = SystemConfig()
    storage: StorageConfig = StorageConfig()
    api: ApiConfig = ApiConfig()

    @property
    def enabled_exchanges(self) -> List[ExchangeConfig]:
        return [ex for ex in self.exchanges if ex.enabled]

    def with_exchanges(self, names) -> "ScannerConfig":
        """Copy keeping only the named exchanges (interactive selection)."""
        keep = set(names)
        return ScannerConfig(
            arbitrage=self.arbitrage,
            exchanges=[ex for ex in self.exchanges if ex.name in keep],
            system=self.system,
            storage=self.storage,
            api=self.api,
        )


def load_config(path: str = DEFAULT_CONFIG_PATH, environ: Optional[Mapping[str, str]] = None) -> ScannerConfig:
    """
    Reads the YAML config file and applies environment overrides.
    """
    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"config file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"config file {path} is not valid YAML: {e}") from e
    return parse_config(raw, os.environ if environ is None else environ)


def parse_config(raw: Dict[str, Any], environ: Mapping[str, str]) -> ScannerConfig:
    if not isinstance(raw, dict):
        raise ConfigError("config root must be a mapping")

    system_raw = _section(raw, "system")
    system = SystemConfig(
        environment=str(system_raw.get("environment", "live")),
        log_level=str(system_raw.get("log_level", "INFO")).upper(),
        network_timeout_ms=_as_int(system_raw.get("network_timeout_ms", 10000), "system.network_timeout_ms"),
    )
    if system.environment not in ("live", "testnet"):
        raise ConfigError(f"system.environment must be 'live' or 'testnet', got {system.environment!r}")

    arb_raw = dict(_section(raw, "arbitrage"))
    # environment wins over the file
    if "MIN_PROFIT_PERCENTAGE" in environ:
        arb_raw["min_profit_percentage"] = environ["MIN_PROFIT_PERCENTAGE"]
    if "QUOTE_ASSETS_FILTER" in environ:
        arb_raw["quote_assets_filter"] = [q for q in environ["QUOTE_ASSETS_FILTER"].split(",") if q.strip()]
    if "INITIAL_QUANTITY_ANALYZED" in environ:
        arb_raw["start_index"] = environ["INITIAL_QUANTITY_ANALYZED"]
    if "FINAL_QUANTITY_ANALYZED" in environ:
        arb_raw["end_index"] = environ["FINAL_QUANTITY_ANALYZED"]

    if "min_profit_percentage" not in arb_raw:
        raise ConfigError("arbitrage.min_profit_percentage is required")

    quote_filter = arb_raw.get("quote_assets_filter") or []
    if isinstance(quote_filter, str):
        quote_filter = [quote_filter]
    if not isinstance(quote_filter, list):
        raise ConfigError("arbitrage.quote_assets_filter must be a list")

    end_index = arb_raw.get("end_index")
    arbitrage = ArbitrageConfig(
        min_profit_percentage=_as_float(arb_raw["min_profit_percentage"], "arbitrage.min_profit_percentage"),
        quote_assets_filter=frozenset(str(q).strip().upper() for q in quote_filter),
        start_index=_as_int(arb_raw.get("start_index", 0), "arbitrage.start_index"),
        end_index=None if end_index is None else _as_int(end_index, "arbitrage.end_index"),
        inter_group_delay_seconds=_as_float(
            arb_raw.get("inter_group_delay_seconds", DEFAULT_INTER_GROUP_DELAY),
            "arbitrage.inter_group_delay_seconds",
        ),
        channel_size=_as_int(arb_raw.get("channel_size", 16), "arbitrage.channel_size"),
    )

    exchanges_raw = raw.get("exchanges") or {}
    if not isinstance(exchanges_raw, dict):
        raise ConfigError("exchanges must be a mapping of exchange id -> settings")
    exchanges = []
    for name, creds in exchanges_raw.items():
        creds = creds or {}
        if not isinstance(creds, dict):
            raise ConfigError(f"exchanges.{name} must be a mapping")
        prefix = str(name).upper()
        aliases = creds.get("network_aliases") or {}
        if not isinstance(aliases, dict):
            raise ConfigError(f"exchanges.{name}.network_aliases must be a mapping")
        exchanges.append(ExchangeConfig(
            name=str(name).lower(),
            api_key=str(creds.get("api_key") or environ.get(f"{prefix}_KEY", "")),
            secret=str(creds.get("secret") or environ.get(f"{prefix}_SECRET", "")),
            password=str(creds.get("password") or environ.get(f"{prefix}_PASSWORD", "")),
            enabled=bool(creds.get("enabled", True)),
            network_aliases={str(k).upper(): str(v).upper() for k, v in aliases.items()},
        ))

    storage_raw = _section(raw, "storage")
    storage = StorageConfig(
        database=str(storage_raw.get("database", DEFAULT_DATABASE)),
        audit_log=str(storage_raw.get("audit_log", DEFAULT_AUDIT_LOG)),
    )

    api_raw = _section(raw, "api")
    api = ApiConfig(
        host=str(api_raw.get("host", DEFAULT_API_HOST)),
        port=_as_int(environ.get("PORT", api_raw.get("port", DEFAULT_API_PORT)), "api.port"),
    )

    return ScannerConfig(arbitrage=arbitrage, exchanges=exchanges, system=system, storage=storage, api=api)


def _section(raw: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"{key} must be a mapping")
    return value


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a number, got {value!r}") from e


def _as_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from e
