"""Tests for gamification.py streak rules and catalog."""

from datetime import date

from gamification import POWERUPS, next_streak, parse_activity_date

TODAY = date(2026, 3, 10)


class TestNextStreak:
    def test_first_activity(self):
        assert next_streak(0, None, TODAY, correct=True) == 1
        assert next_streak(0, None, TODAY, correct=False) == 0

    def test_same_day_unchanged(self):
        assert next_streak(4, TODAY, TODAY, correct=True) == 4
        assert next_streak(4, TODAY, TODAY, correct=False) == 4

    def test_consecutive_day(self):
        yesterday = date(2026, 3, 9)
        assert next_streak(4, yesterday, TODAY, correct=True) == 5
        assert next_streak(4, yesterday, TODAY, correct=False) == 0

    def test_gap_resets(self):
        last = date(2026, 3, 7)
        assert next_streak(9, last, TODAY, correct=True) == 1
        assert next_streak(9, last, TODAY, correct=False) == 0

    def test_month_boundary(self):
        assert next_streak(2, date(2026, 2, 28), date(2026, 3, 1), correct=True) == 3


class TestParseActivityDate:
    def test_blank(self):
        assert parse_activity_date("") is None

    def test_iso_date_and_datetime(self):
        assert parse_activity_date("2026-03-10") == TODAY
        assert parse_activity_date("2026-03-10T08:30:00") == TODAY

    def test_garbage(self):
        assert parse_activity_date("yesterday") is None


class TestCatalog:
    def test_prices(self):
        assert {k: v["price"] for k, v in POWERUPS.items()} == {
            "streak_freeze": 50,
            "double_points": 100,
            "hint": 30,
            "second_chance": 75,
            "extra_time": 40,
        }

    def test_entries_complete(self):
        for key, item in POWERUPS.items():
            assert item["id"] == key
            assert item["name"] and item["description"] and item["icon"]
