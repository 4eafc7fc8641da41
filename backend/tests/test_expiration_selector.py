"""
Unit Tests for the Expiration Selector
======================================

All tests pin "now" so results never depend on the wall clock.
"""

from datetime import datetime, timezone

import pytest

from services.expiration_selector import (
    NY,
    days_from_now,
    evaluate_expirations,
    filter_by_horizon,
    parse_expiration,
    select_expirations,
)

# Wednesday 2025-06-11, 10:00 ET
NOW = datetime(2025, 6, 11, 10, 0, tzinfo=NY)


class TestValidity:

    def test_expired_and_malformed_dates_dropped(self):
        listing = evaluate_expirations(["2020-01-01", "2099-01-01", "not-a-date"], now=NOW)

        assert listing.expirations == ["2099-01-01"]
        assert listing.raw == ["2020-01-01", "2099-01-01", "not-a-date"]

    def test_today_is_still_valid(self):
        listing = evaluate_expirations(["2025-06-11", "2025-06-10"], now=NOW)

        assert listing.expirations == ["2025-06-11"]

    def test_utc_now_is_converted_to_eastern(self):
        # 02:00 UTC on the 12th is still the evening of the 11th in New York
        utc_now = datetime(2025, 6, 12, 2, 0, tzinfo=timezone.utc)

        assert days_from_now("2025-06-11", utc_now) == 0

    def test_sorted_and_deduplicated(self):
        listing = evaluate_expirations(["2025-07-18", "2025-06-20", "2025-07-18"], now=NOW)

        assert listing.expirations == ["2025-06-20", "2025-07-18"]

    def test_debug_entries(self):
        listing = evaluate_expirations(["2025-06-10", "2025-06-20", "junk"], now=NOW)

        data = listing.to_dict()
        assert data["debugInfo"]["totalFound"] == 3
        assert data["debugInfo"]["formatted"] == [
            {"date": "2025-06-10", "daysFromNow": -1, "isValid": False},
            {"date": "2025-06-20", "daysFromNow": 9, "isValid": True},
            {"date": "junk", "daysFromNow": None, "isValid": False},
        ]

    def test_parse_expiration(self):
        assert parse_expiration("2025-06-20").isoformat() == "2025-06-20"
        assert parse_expiration("06/20/2025") is None


class TestHorizon:
    EXPIRATIONS = ["2025-06-13", "2025-07-11", "2025-07-18", "2025-09-19"]

    def test_all_keeps_everything(self):
        assert filter_by_horizon(self.EXPIRATIONS, "all", now=NOW) == self.EXPIRATIONS

    def test_near_is_within_thirty_days(self):
        # 2025-07-11 is exactly 30 days out
        assert filter_by_horizon(self.EXPIRATIONS, "near", now=NOW) == ["2025-06-13", "2025-07-11"]

    def test_far_is_beyond_thirty_days(self):
        assert filter_by_horizon(self.EXPIRATIONS, "far", now=NOW) == ["2025-07-18", "2025-09-19"]

    def test_custom_near_term_window(self):
        assert filter_by_horizon(self.EXPIRATIONS, "near", now=NOW, near_term_days=7) == ["2025-06-13"]


class TestCap:

    def test_first_six_chronologically(self):
        expirations = [f"2025-{m:02d}-15" for m in range(12, 0, -1)]

        selected = select_expirations(expirations, 6)

        assert selected == [f"2025-{m:02d}-15" for m in range(1, 7)]

    @pytest.mark.parametrize("cap,expected", [(0, 0), (3, 3), (10, 4)])
    def test_cap_bounds(self, cap, expected):
        assert len(select_expirations(TestHorizon.EXPIRATIONS, cap)) == expected
