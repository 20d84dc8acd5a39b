# arb_scanner/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

SYMBOL_SEPARATOR = "/"


class Category(Enum):
    """
    Storage bucket for a validated opportunity.
    """
    EXECUTABLE = "executable"
    POTENTIAL = "potential"

    @classmethod
    def for_opportunity(cls, opp: "Opportunity") -> "Category":
        if opp.validation is not None and opp.validation.is_executable:
            return cls.EXECUTABLE
        return cls.POTENTIAL


@dataclass(frozen=True, slots=True)
class StandardPair:
    """
    A trading pair normalized to a canonical 'BASE/QUOTE' symbol.
    'raw' keeps the source payload (the ccxt market) for follow-up requests.
    """
    symbol: str
    base: str
    quote: str
    source_id: str
    raw: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class StandardTicker:
    """
    Instantaneous quote for one pair on one source.
    ask: price to buy the base asset. bid: price to sell it.
    """
    source_id: str
    price: float
    bid: float
    ask: float
    raw: Any = field(default=None, compare=False, repr=False)

    @property
    def is_usable(self) -> bool:
        """At least one side of the book is quoted; a 0 side means no orders."""
        return (self.ask or 0) > 0 or (self.bid or 0) > 0


@dataclass(frozen=True, slots=True)
class AssetStatus:
    """
    Transfer capability snapshot of one asset on one source.
    Network names are already normalized by the source.
    """
    can_deposit: bool
    can_withdraw: bool
    deposit_networks: FrozenSet[str] = frozenset()
    withdraw_networks: FrozenSet[str] = frozenset()
    raw: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class SharedPairGroup:
    symbol: str
    members: Tuple[Tuple[str, StandardPair], ...]

    def __post_init__(self):
        if len(self.members) < 2:
            raise ValueError(f"{self.symbol}: a shared group needs at least 2 sources, got {len(self.members)}")

    @property
    def source_ids(self) -> Tuple[str, ...]:
        return tuple(source_id for source_id, _ in self.members)


@dataclass(frozen=True, slots=True)
class EnrichedGroup:
    group: SharedPairGroup
    tickers: Dict[str, StandardTicker]

    def __post_init__(self):
        if len(self.tickers) < 2:
            raise ValueError(f"{self.group.symbol}: need at least 2 tickers, got {len(self.tickers)}")
        unknown = set(self.tickers) - set(self.group.source_ids)
        if unknown:
            raise ValueError(f"{self.group.symbol}: tickers for non-member sources {sorted(unknown)}")

    @property
    def symbol(self) -> str:
        return self.group.symbol

    def ordered_tickers(self):
        """Tickers in group member order."""
        return [(sid, self.tickers[sid]) for sid in self.group.source_ids if sid in self.tickers]


@dataclass(frozen=True, slots=True)
class PricePoint:
    source: str
    price: float


@dataclass(frozen=True, slots=True)
class WithdrawInfo:
    can_withdraw: bool
    withdraw_networks: FrozenSet[str] = frozenset()


@dataclass(frozen=True, slots=True)
class DepositInfo:
    can_deposit: bool
    deposit_networks: FrozenSet[str] = frozenset()


@dataclass(frozen=True, slots=True)
class OpportunityValidation:
    is_executable: bool
    common_networks: FrozenSet[str]
    buy_source: WithdrawInfo
    sell_source: DepositInfo
    asset_details: Dict[str, Dict[str, Any]] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_executable": self.is_executable,
            "common_networks": sorted(self.common_networks),
            "buy_source": {
                "can_withdraw": self.buy_source.can_withdraw,
                "withdraw_networks": sorted(self.buy_source.withdraw_networks),
            },
            "sell_source": {
                "can_deposit": self.sell_source.can_deposit,
                "deposit_networks": sorted(self.sell_source.deposit_networks),
            },
            "asset_details": self.asset_details,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OpportunityValidation":
        buy = data.get("buy_source") or {}
        sell = data.get("sell_source") or {}
        return cls(
            is_executable=bool(data["is_executable"]),
            common_networks=frozenset(data.get("common_networks") or ()),
            buy_source=WithdrawInfo(bool(buy.get("can_withdraw")), frozenset(buy.get("withdraw_networks") or ())),
            sell_source=DepositInfo(bool(sell.get("can_deposit")), frozenset(sell.get("deposit_networks") or ())),
            asset_details=data.get("asset_details") or {},
        )


@dataclass(slots=True)
class Opportunity:
    """
    A directional price spread between two sources for the same symbol.
    Created by the spread detector; 'validation' is attached once afterwards.
    """
    pair: str
    profit_percentage: float
    buy_at: PricePoint
    sell_at: PricePoint
    validation: Optional[OpportunityValidation] = None

    @property
    def base_asset(self) -> str:
        return split_symbol(self.pair)[0]

    @property
    def quote_asset(self) -> str:
        return split_symbol(self.pair)[1]

    def attach_validation(self, validation: OpportunityValidation):
        if self.validation is not None:
            raise ValueError(f"{self.pair}: validation already attached")
        self.validation = validation

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "pair": self.pair,
            "profit_percentage": self.profit_percentage,
            "buy_at": {"source": self.buy_at.source, "price": self.buy_at.price},
            "sell_at": {"source": self.sell_at.source, "price": self.sell_at.price},
        }
        if self.validation is not None:
            data["validation"] = self.validation.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Opportunity":
        validation = data.get("validation")
        return cls(
            pair=data["pair"],
            profit_percentage=float(data["profit_percentage"]),
            buy_at=PricePoint(data["buy_at"]["source"], float(data["buy_at"]["price"])),
            sell_at=PricePoint(data["sell_at"]["source"], float(data["sell_at"]["price"])),
            validation=OpportunityValidation.from_dict(validation) if validation else None,
        )


def split_symbol(symbol: str) -> Tuple[str, str]:
    """'BTC/USDT' -> ('BTC', 'USDT'). Raises ValueError on any other shape."""
    parts = symbol.split(SYMBOL_SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"not a BASE/QUOTE symbol: {symbol!r}")
    return parts[0], parts[1]


def make_symbol(base: str, quote: str) -> str:
    return f"{base.upper()}{SYMBOL_SEPARATOR}{quote.upper()}"
