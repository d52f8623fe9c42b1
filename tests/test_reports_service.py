"""Tests for month bucketing and category grouping of the report."""
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from models.cost import CostCreate
from services import costs_service, reports_service
from services.errors import InputValidationError, StoreError
from conftest import TEST_USER_ID


async def _add(db, description, category, amount, created_at, userid=TEST_USER_ID):
    return await costs_service.add_cost(
        db,
        CostCreate(userid=userid, description=description, category=category, sum=amount, created_at=created_at),
    )


def _bucket(report, category):
    for entry in report.costs:
        if category in entry:
            return entry[category]
    raise AssertionError(f"category {category} missing from report")


class TestMonthBounds:

    def test_january(self):
        assert reports_service.month_bounds(2025, 1) == (datetime(2025, 1, 1), datetime(2025, 2, 1))

    def test_december_rolls_into_next_year(self):
        assert reports_service.month_bounds(2024, 12) == (datetime(2024, 12, 1), datetime(2025, 1, 1))


class TestParseReportParams:

    def test_parses_strings(self):
        assert reports_service.parse_report_params("u", "2025", "01") == ("u", 2025, 1)

    def test_accepts_integers(self):
        assert reports_service.parse_report_params("u", 2025, 12) == ("u", 2025, 12)

    def test_last_year_allowed_before_december(self):
        assert reports_service.parse_report_params("u", "9999", "11") == ("u", 9999, 11)

    def test_december_of_last_year_rejected(self):
        with pytest.raises(InputValidationError):
            reports_service.parse_report_params("u", "9999", "12")

    @pytest.mark.parametrize("userid,year,month", [
        (None, "2025", "1"),
        ("u", None, "1"),
        ("u", "2025", None),
        ("", "2025", "1"),
        ("u", "", "1"),
    ])
    def test_missing(self, userid, year, month):
        with pytest.raises(InputValidationError) as exc_info:
            reports_service.parse_report_params(userid, year, month)
        assert "Missing query params" in exc_info.value.message

    @pytest.mark.parametrize("year,month", [
        ("2025", "0"),
        ("2025", "13"),
        ("2025", "-1"),
        ("abc", "1"),
        ("2025", "jan"),
        ("2025", "1.5"),
    ])
    def test_invalid(self, year, month):
        with pytest.raises(InputValidationError) as exc_info:
            reports_service.parse_report_params("u", year, month)
        assert exc_info.value.message == "Invalid year or month"


class TestGetReport:

    @pytest.mark.asyncio
    async def test_single_cost_in_food(self, db):
        await _add(db, "bread", "food", 12, datetime(2025, 1, 10))

        report = await reports_service.get_report(db, TEST_USER_ID, 2025, 1)

        assert report.userid == TEST_USER_ID
        assert report.year == 2025
        assert report.month == 1
        food = _bucket(report, "food")
        assert len(food) == 1
        assert food[0].model_dump() == {"sum": 12, "description": "bread", "day": 10}
        for category in ["health", "housing", "sport", "education"]:
            assert _bucket(report, category) == []

    @pytest.mark.asyncio
    async def test_empty_month_has_all_categories(self, db):
        report = await reports_service.get_report(db, TEST_USER_ID, 2025, 1)

        assert [list(entry.keys())[0] for entry in report.costs] == [
            "food", "health", "housing", "sport", "education"
        ]
        assert all(list(entry.values())[0] == [] for entry in report.costs)

    @pytest.mark.asyncio
    async def test_only_costs_inside_month_are_included(self, db):
        await _add(db, "before", "food", 1, datetime(2024, 12, 31, 23, 59, 59))
        await _add(db, "first", "food", 2, datetime(2025, 1, 1, 0, 0, 0))
        await _add(db, "last", "food", 3, datetime(2025, 1, 31, 23, 59, 59))
        await _add(db, "after", "food", 4, datetime(2025, 2, 1, 0, 0, 0))

        report = await reports_service.get_report(db, TEST_USER_ID, 2025, 1)

        food = _bucket(report, "food")
        assert [entry.description for entry in food] == ["first", "last"]
        assert [entry.day for entry in food] == [1, 31]

    @pytest.mark.asyncio
    async def test_december_report_excludes_next_january(self, db):
        await _add(db, "gift", "education", 50, datetime(2024, 12, 24))
        await _add(db, "course", "education", 70, datetime(2025, 1, 2))

        report = await reports_service.get_report(db, TEST_USER_ID, 2024, 12)

        assert [entry.description for entry in _bucket(report, "education")] == ["gift"]

    @pytest.mark.asyncio
    async def test_groups_by_category_in_insertion_order(self, db):
        await _add(db, "rent", "housing", 3000, datetime(2025, 3, 1))
        await _add(db, "late milk", "food", 7, datetime(2025, 3, 20))
        await _add(db, "early bread", "food", 9, datetime(2025, 3, 2))
        await _add(db, "run club", "sport", 15, datetime(2025, 3, 5))

        report = await reports_service.get_report(db, TEST_USER_ID, 2025, 3)

        assert [entry.description for entry in _bucket(report, "food")] == ["late milk", "early bread"]
        assert [entry.description for entry in _bucket(report, "housing")] == ["rent"]
        assert [entry.description for entry in _bucket(report, "sport")] == ["run club"]
        assert _bucket(report, "health") == []

    @pytest.mark.asyncio
    async def test_other_users_costs_are_excluded(self, db):
        await db.users.insert_one({"id": "555", "first_name": "a", "last_name": "b", "totalCost": 0})
        await _add(db, "mine", "food", 1, datetime(2025, 1, 5))
        await _add(db, "theirs", "food", 2, datetime(2025, 1, 5), userid="555")

        report = await reports_service.get_report(db, TEST_USER_ID, 2025, 1)

        assert [entry.description for entry in _bucket(report, "food")] == ["mine"]

    @pytest.mark.asyncio
    async def test_repeated_calls_are_identical(self, db):
        await _add(db, "bread", "food", 12, datetime(2025, 1, 10))
        await _add(db, "dentist", "health", 200, datetime(2025, 1, 11))

        first = await reports_service.get_report(db, TEST_USER_ID, "2025", "1")
        second = await reports_service.get_report(db, TEST_USER_ID, "2025", "1")

        assert first.model_dump() == second.model_dump()

    @pytest.mark.asyncio
    async def test_documents_with_unknown_category_are_skipped(self, db):
        await db.costs.insert_one({
            "description": "legacy",
            "category": "travel",
            "userid": TEST_USER_ID,
            "sum": 10,
            "created_at": datetime(2025, 1, 3),
        })
        await _add(db, "bread", "food", 12, datetime(2025, 1, 10))

        report = await reports_service.get_report(db, TEST_USER_ID, 2025, 1)

        assert len(report.costs) == 5
        assert [entry.description for entry in _bucket(report, "food")] == ["bread"]

    @pytest.mark.asyncio
    async def test_store_failure_is_store_error(self):
        db = MagicMock()
        db.costs.find.side_effect = ServerSelectionTimeoutError("no servers")

        with pytest.raises(StoreError):
            await reports_service.get_report(db, TEST_USER_ID, 2025, 1)
