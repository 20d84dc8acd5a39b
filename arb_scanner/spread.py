# arb_scanner/spread.py
from typing import List

from .models import EnrichedGroup, Opportunity, PricePoint

PROFIT_DECIMALS = 4


def spread_percentage(buy_ask: float, sell_bid: float) -> float:
    return (sell_bid - buy_ask) / buy_ask * 100


def detect_spreads(enriched: EnrichedGroup, min_profit_percentage: float) -> List[Opportunity]:
    """
    Evaluates every ordered (buy, sell) pair of sources in the group.

    Buying happens at the buy source's ask, selling at the sell source's bid.
    Both directions are checked independently and neither suppresses the other.
    """
    tickers = enriched.ordered_tickers()
    opportunities = []

    for i, (buy_source, buy_ticker) in enumerate(tickers):
        for j, (sell_source, sell_ticker) in enumerate(tickers):
            if i == j:
                continue
            if buy_ticker.ask <= 0 or sell_ticker.bid <= buy_ticker.ask:
                continue

            spread = spread_percentage(buy_ticker.ask, sell_ticker.bid)
            profit = round(spread, PROFIT_DECIMALS)
            # the reported (rounded) figure must clear the threshold too
            if spread < min_profit_percentage or profit < min_profit_percentage:
                continue

            opportunities.append(Opportunity(
                pair=enriched.symbol,
                profit_percentage=profit,
                buy_at=PricePoint(buy_source, buy_ticker.ask),
                sell_at=PricePoint(sell_source, sell_ticker.bid),
            ))

    return opportunities
