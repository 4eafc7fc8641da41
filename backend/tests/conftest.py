"""
Shared fixtures for the screener test suite.

Factories build upstream-shaped records so each test states only the fields
it cares about.
"""
import sys
from pathlib import Path

import pytest

# Add backend to path for direct imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from models.options import OptionContract, Quote  # noqa: E402


def build_contract(
    strike: float,
    bid: float,
    ask: float,
    volume: int = 100,
    option_type: str = "put",
    expiration: str = "2099-01-16",
    underlying: str = "F",
    open_interest: int = 500,
    symbol: str = None,
) -> OptionContract:
    letter = "P" if option_type == "put" else "C"
    return OptionContract(
        symbol=symbol or f"{underlying}{expiration.replace('-', '')[2:]}{letter}{int(strike * 1000):08d}",
        underlying=underlying,
        strike=strike,
        bid=bid,
        ask=ask,
        last=round((bid + ask) / 2, 2),
        volume=volume,
        open_interest=open_interest,
        expiration_date=expiration,
        option_type=option_type,
    )


def build_quote(symbol: str = "F", last: float = 20.0, average_volume: int = 5_000_000) -> Quote:
    return Quote(symbol=symbol, last=last, average_volume=average_volume)


@pytest.fixture
def make_contract():
    return build_contract


@pytest.fixture
def make_quote():
    return build_quote
