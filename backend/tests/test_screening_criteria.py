"""
Unit Tests for request validation and universe resolution
=========================================================
"""

import pytest
from pydantic import ValidationError

from data.screener_universe import (
    PREMIUM_STOCKS,
    SECTOR_UNIVERSES,
    UNDER_50_STOCKS,
    normalize_symbols,
    resolve_price_ceiling,
    resolve_universe,
)
from models.schemas import MalformedRequestError, ScreenerRequest, ScreeningCriteria


class TestScreenerRequest:

    def test_default_construction(self):
        assert ScreenerRequest().to_criteria() == ScreeningCriteria()

    def test_camel_case_aliases(self):
        request = ScreenerRequest(**{
            "exactSpreads": [0.10, 0.15, 0.1],
            "minBid": 0.10,
            "maxResults": 20,
            "expirationFilter": "near",
            "optionType": "both",
            "strikeRange": "extended",
            "minOptionVolume": 50,
        })

        criteria = request.to_criteria()

        assert criteria.exact_spreads == (0.1, 0.15)
        assert criteria.max_results == 20
        assert criteria.expiration_filter == "near"
        assert criteria.wants_puts and criteria.wants_calls
        assert criteria.min_strike_pct == 10.0
        assert criteria.min_option_volume == 50
        assert criteria.min_open_interest == 0

    def test_snake_case_population(self):
        criteria = ScreenerRequest(option_type="calls", min_bid=0.2).to_criteria()

        assert criteria.option_type == "calls"
        assert not criteria.wants_puts

    @pytest.mark.parametrize("fields", [
        {"exact_spreads": []},
        {"exact_spreads": [0.0]},
        {"min_bid": -0.01},
        {"max_stock_price": 0},
        {"max_stock_price": -5},
        {"max_results": -5},
        {"min_average_volume": -1},
        {"min_open_interest": -1},
        {"sector": "unknown"},
    ])
    def test_malformed(self, fields):
        with pytest.raises(MalformedRequestError):
            ScreenerRequest(**fields).to_criteria()

    def test_unknown_enum_rejected_by_model(self):
        with pytest.raises(ValidationError):
            ScreenerRequest(strikeRange="huge")

    @pytest.mark.parametrize("price_filter,max_price,expected", [
        ("all", None, None),
        ("under25", None, 25.0),
        ("under50", None, 50.0),
        ("verified50", None, 50.0),
        ("under25", 40.0, 40.0),
    ])
    def test_price_ceiling(self, price_filter, max_price, expected):
        criteria = ScreenerRequest(priceFilter=price_filter, maxStockPrice=max_price).to_criteria()

        assert criteria.max_stock_price == expected
        assert resolve_price_ceiling(price_filter, max_price) == expected

    @pytest.mark.parametrize("max_price,expected", [(0, 50.0), (-5.0, 50.0), (None, 50.0), (30.0, 30.0)])
    def test_non_positive_override_ignored(self, max_price, expected):
        assert resolve_price_ceiling("under50", max_price) == expected

    def test_sector_is_case_insensitive(self):
        assert ScreenerRequest(sector="Energy").to_criteria().sector == "energy"

    def test_criteria_echo(self):
        data = ScreeningCriteria(exact_spreads=(0.1, 0.15)).to_dict()

        assert data["exactSpreads"] == [0.1, 0.15]
        assert data["priceFilter"] == "under50"
        assert data["sector"] == "all"


class TestUniverse:

    def test_explicit_symbols_win(self):
        assert resolve_universe([" f ", "bac", "F", ""], "all", "energy") == ["F", "BAC"]

    def test_default_under50(self):
        universe = resolve_universe(None, "under50")

        assert universe == normalize_symbols(UNDER_50_STOCKS)
        assert len(universe) == len(set(universe))

    def test_all_adds_premium(self):
        universe = resolve_universe([], "all")

        assert set(universe) == set(UNDER_50_STOCKS) | set(PREMIUM_STOCKS)

    def test_sector_universe(self):
        assert resolve_universe(None, "under50", "biotech") == normalize_symbols(SECTOR_UNIVERSES["biotech"])

    def test_normalize_symbols(self):
        assert normalize_symbols(["aapl", "AAPL ", None, " msft"]) == ["AAPL", "MSFT"]
