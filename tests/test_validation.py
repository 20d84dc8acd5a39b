import pytest

from arb_scanner.errors import OpportunityValidationError
from arb_scanner.models import Opportunity, PricePoint
from arb_scanner.validation import ExecutabilityValidator, build_validation

from .conftest import FakeSource, status


def candidate(pair="AAA/USDT", buy="x", sell="y"):
    return Opportunity(pair=pair, profit_percentage=3.0, buy_at=PricePoint(buy, 100), sell_at=PricePoint(sell, 103))


def validator(x_statuses, y_statuses, logger):
    srcs = {
        "x": FakeSource("x", statuses=x_statuses),
        "y": FakeSource("y", statuses=y_statuses),
    }
    return ExecutabilityValidator(srcs, logger), srcs


class TestExecutabilityValidator:
    @pytest.mark.asyncio
    async def test_no_shared_network_is_potential(self, test_logger):
        v, _ = validator(
            {"AAA": status(withdraw={"ERC20"}), "USDT": status()},
            {"AAA": status(deposit={"TRC20"}), "USDT": status()},
            test_logger,
        )
        opp = await v.validate(candidate())

        assert opp.validation.is_executable is False
        assert opp.validation.common_networks == frozenset()
        assert opp.validation.buy_source.can_withdraw is True
        assert opp.validation.sell_source.can_deposit is True

    @pytest.mark.asyncio
    async def test_shared_network_is_executable(self, test_logger):
        v, _ = validator(
            {"AAA": status(withdraw={"ERC20"}), "USDT": status()},
            {"AAA": status(deposit={"ERC20", "TRC20"}), "USDT": status()},
            test_logger,
        )
        opp = await v.validate(candidate())

        assert opp.validation.is_executable is True
        assert opp.validation.common_networks == frozenset({"ERC20"})

    @pytest.mark.asyncio
    async def test_disabled_withdrawal_blocks_execution(self, test_logger):
        v, _ = validator(
            {"AAA": status(withdraw={"ERC20"}, can_withdraw=False)},
            {"AAA": status(deposit={"ERC20"})},
            test_logger,
        )
        opp = await v.validate(candidate())

        assert opp.validation.is_executable is False
        assert opp.validation.common_networks == frozenset({"ERC20"})

    @pytest.mark.asyncio
    async def test_missing_status_counts_as_no_transfer(self, test_logger):
        v, _ = validator({}, {"AAA": status(deposit={"ERC20"})}, test_logger)
        opp = await v.validate(candidate())

        assert opp.validation.is_executable is False
        assert opp.validation.buy_source.can_withdraw is False
        assert opp.validation.buy_source.withdraw_networks == frozenset()

    @pytest.mark.asyncio
    async def test_looks_up_base_and_quote_on_both_sources(self, test_logger):
        v, srcs = validator({}, {}, test_logger)
        await v.validate(candidate())

        assert sorted(srcs["x"].status_calls) == ["AAA", "USDT"]
        assert sorted(srcs["y"].status_calls) == ["AAA", "USDT"]

    @pytest.mark.asyncio
    async def test_asset_details_keep_raw_payloads(self, test_logger):
        v, _ = validator(
            {"AAA": status(withdraw={"ERC20"}, raw={"coin": "AAA"}), "USDT": status(raw={"coin": "USDT"})},
            {"AAA": status(deposit={"ERC20"})},
            test_logger,
        )
        opp = await v.validate(candidate())

        details = opp.validation.asset_details
        assert details["base_asset"]["buy_source"] == {"coin": "AAA"}
        assert details["base_asset"]["sell_source"] is None
        assert details["quote_asset"]["buy_source"] == {"coin": "USDT"}

    @pytest.mark.asyncio
    async def test_lookup_error_drops_candidate(self, test_logger):
        v, _ = validator(
            {"AAA": status(withdraw={"ERC20"}), "USDT": RuntimeError("rate limited")},
            {"AAA": status(deposit={"ERC20"})},
            test_logger,
        )
        opp = candidate()

        with pytest.raises(OpportunityValidationError):
            await v.validate(opp)
        assert await v.try_validate(candidate()) is None
        assert opp.validation is None

    @pytest.mark.asyncio
    async def test_unknown_source_drops_candidate(self, test_logger):
        v, _ = validator({}, {}, test_logger)
        assert await v.try_validate(candidate(sell="nowhere")) is None

    @pytest.mark.asyncio
    async def test_malformed_symbol_drops_candidate(self, test_logger):
        v, _ = validator({}, {}, test_logger)
        with pytest.raises(OpportunityValidationError) as exc:
            await v.validate(candidate(pair="AAAUSDT"))
        assert exc.value.pair == "AAAUSDT"

    @pytest.mark.asyncio
    async def test_validation_is_attached_once(self, test_logger):
        v, _ = validator({}, {}, test_logger)
        opp = await v.validate(candidate())

        with pytest.raises(OpportunityValidationError):
            await v.validate(opp)


class TestBuildValidation:
    def test_common_networks_subset_of_both_sides(self):
        result = build_validation(
            status(withdraw={"ERC20", "BEP20", "SOLANA"}), None,
            status(deposit={"BEP20", "SOLANA", "TRC20"}), None,
        )

        assert result.common_networks == frozenset({"BEP20", "SOLANA"})
        assert result.common_networks <= result.buy_source.withdraw_networks
        assert result.common_networks <= result.sell_source.deposit_networks

    def test_all_missing(self):
        result = build_validation(None, None, None, None)

        assert result.is_executable is False
        assert result.common_networks == frozenset()
        assert result.asset_details["quote_asset"] == {"buy_source": None, "sell_source": None}
