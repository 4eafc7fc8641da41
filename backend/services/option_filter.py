"""
Option Filter - pure chain filtering for the spread screener
============================================================

No I/O. Takes a raw chain (puts and calls mixed) and returns the contracts
worth trading for one side, best first.

RETENTION RULES (all must hold):
- bid > 0 and ask > 0 (two-sided market)
- bid >= min_bid
- round(ask - bid, 2) is one of the accepted spreads (exact set membership,
  a $0.12 spread does NOT match {0.10, 0.15})
- strike is out of the money by at least the strike range percentage:
    puts:  strike <= price * (1 - pct/100)
    calls: strike >= price * (1 + pct/100)
- volume >= min_option_volume and open_interest >= min_open_interest
  (both disabled at 0)

ORDER: volume desc, then strike asc, then option symbol asc.
"""
from typing import Iterable, List, Sequence, Tuple

from models.options import FilteredOption, OptionContract

OPTION_SIDES = ("put", "call")


def round_spread(value: float) -> float:
    """Round a dollar amount to cents."""
    return round(value, 2)


def strike_threshold(option_type: str, stock_price: float, min_pct: float) -> float:
    if option_type == "put":
        return stock_price * (1 - min_pct / 100)
    return stock_price * (1 + min_pct / 100)


def strike_matches(option_type: str, strike: float, stock_price: float, min_pct: float) -> bool:
    threshold = strike_threshold(option_type, stock_price, min_pct)
    if option_type == "put":
        return strike <= threshold
    return strike >= threshold


def to_filtered_option(contract: OptionContract) -> FilteredOption:
    return FilteredOption(
        symbol=contract.symbol,
        description=contract.description,
        option_type=contract.option_type,
        strike=contract.strike,
        bid=contract.bid,
        ask=contract.ask,
        bid_ask_spread=round_spread(contract.ask - contract.bid),
        volume=contract.volume,
        open_interest=contract.open_interest,
        expiration_date=contract.expiration_date,
        last_price=contract.last,
        change=contract.change,
    )


def option_sort_key(option: FilteredOption) -> Tuple[int, float, str]:
    return (-option.volume, option.strike, option.symbol)


def sort_by_volume(options: Iterable[FilteredOption]) -> List[FilteredOption]:
    return sorted(options, key=option_sort_key)


def filter_options(
    chain: Sequence[OptionContract],
    option_type: str,
    stock_price: float,
    exact_spreads: Sequence[float] = (0.15,),
    min_bid: float = 0.05,
    min_strike_pct: float = 3.0,
    min_option_volume: int = 0,
    min_open_interest: int = 0,
) -> List[FilteredOption]:
    """
    Filter one side ("put" or "call") of a raw chain.

    Args:
        chain: Raw contracts for one symbol+expiration
        option_type: "put" or "call"
        stock_price: Current underlying price
        exact_spreads: Accepted bid/ask spreads in dollars
        min_bid: Minimum bid
        min_strike_pct: Minimum out-of-the-money distance in percent
        min_option_volume: Minimum contract volume (0 disables)
        min_open_interest: Minimum open interest (0 disables)

    Returns:
        Matching contracts sorted by volume descending
    """
    if option_type not in OPTION_SIDES:
        raise ValueError(f"option_type must be one of {OPTION_SIDES}, got '{option_type}'")

    accepted = {round_spread(s) for s in exact_spreads}
    matches: List[FilteredOption] = []

    for contract in chain:
        if contract.option_type != option_type:
            continue
        option = to_filtered_option(contract)
        if option.bid <= 0 or option.ask <= 0:
            continue
        if option.bid < min_bid:
            continue
        if option.bid_ask_spread not in accepted:
            continue
        if not strike_matches(option_type, option.strike, stock_price, min_strike_pct):
            continue
        if min_option_volume and option.volume < min_option_volume:
            continue
        if min_open_interest and option.open_interest < min_open_interest:
            continue
        matches.append(option)

    return sort_by_volume(matches)


def filter_puts(chain: Sequence[OptionContract], stock_price: float, **criteria) -> List[FilteredOption]:
    return filter_options(chain, "put", stock_price, **criteria)


def filter_calls(chain: Sequence[OptionContract], stock_price: float, **criteria) -> List[FilteredOption]:
    return filter_options(chain, "call", stock_price, **criteria)
