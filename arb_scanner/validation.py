# arb_scanner/validation.py
import asyncio
import logging
from typing import Any, Mapping, Optional

from .errors import OpportunityValidationError
from .models import (
    AssetStatus,
    DepositInfo,
    Opportunity,
    OpportunityValidation,
    WithdrawInfo,
    split_symbol,
)
from .sources import PriceSource


def _raw(status: Optional[AssetStatus]) -> Any:
    return status.raw if status is not None else None


def build_validation(buy_base: Optional[AssetStatus], buy_quote: Optional[AssetStatus],
                     sell_base: Optional[AssetStatus], sell_quote: Optional[AssetStatus]) -> OpportunityValidation:
    """
    Decides executability from the four status snapshots.
    A missing status counts as 'cannot transfer'.
    """
    can_withdraw = buy_base.can_withdraw if buy_base is not None else False
    can_deposit = sell_base.can_deposit if sell_base is not None else False
    withdraw_networks = buy_base.withdraw_networks if buy_base is not None else frozenset()
    deposit_networks = sell_base.deposit_networks if sell_base is not None else frozenset()

    common_networks = frozenset(withdraw_networks) & frozenset(deposit_networks)

    return OpportunityValidation(
        is_executable=can_withdraw and can_deposit and len(common_networks) > 0,
        common_networks=common_networks,
        buy_source=WithdrawInfo(can_withdraw, frozenset(withdraw_networks)),
        sell_source=DepositInfo(can_deposit, frozenset(deposit_networks)),
        asset_details={
            "base_asset": {"buy_source": _raw(buy_base), "sell_source": _raw(sell_base)},
            "quote_asset": {"buy_source": _raw(buy_quote), "sell_source": _raw(sell_quote)},
        },
    )


class ExecutabilityValidator:
    """
    Checks that the traded asset can leave the buy source and reach the sell
    source over at least one shared network.

    Fail-closed: any lookup error drops the candidate instead of reporting it
    with partial data.
    """
    def __init__(self, sources: Mapping[str, PriceSource], logger: Optional[logging.Logger] = None):
        self.sources = sources
        self.logger = logger or logging.getLogger("arb_scanner")

    async def validate(self, opp: Opportunity) -> Opportunity:
        """
        Attaches the validation record to the opportunity and returns it.
        Raises OpportunityValidationError when executability cannot be determined.
        """
        try:
            base_asset, quote_asset = split_symbol(opp.pair)
        except ValueError as e:
            raise OpportunityValidationError(opp.pair, str(e)) from e

        buy_source = self.sources.get(opp.buy_at.source)
        sell_source = self.sources.get(opp.sell_at.source)
        if buy_source is None or sell_source is None:
            raise OpportunityValidationError(opp.pair, f"unknown source {opp.buy_at.source}/{opp.sell_at.source}")

        results = await asyncio.gather(
            buy_source.get_asset_status(base_asset),
            buy_source.get_asset_status(quote_asset),
            sell_source.get_asset_status(base_asset),
            sell_source.get_asset_status(quote_asset),
            return_exceptions=True,
        )
        for res in results:
            if isinstance(res, BaseException):
                raise OpportunityValidationError(opp.pair, f"asset status lookup failed: {res}") from res

        buy_base, buy_quote, sell_base, sell_quote = results
        try:
            opp.attach_validation(build_validation(buy_base, buy_quote, sell_base, sell_quote))
        except (AttributeError, TypeError, ValueError) as e:
            raise OpportunityValidationError(opp.pair, f"malformed asset status: {e}") from e
        return opp

    async def try_validate(self, opp: Opportunity) -> Optional[Opportunity]:
        try:
            return await self.validate(opp)
        except OpportunityValidationError as e:
            self.logger.warning(f"Dropping candidate {opp.pair} ({opp.buy_at.source} -> {opp.sell_at.source}): {e.reason}")
            return None
