"""Tests for the tour settlement calculation."""

import datetime as dt

import pytest

from tourdesk.errors import IncompleteTourError
from tourdesk.schemas import (
    Allowance,
    Destination,
    Expense,
    Meal,
    Tour,
    TourShopping,
    TourSummary,
    utcnow,
)
from tourdesk.summary import (
    calculate_summary,
    cascade,
    clamp_guests,
    enrich_tour_with_summary,
    summary_inputs,
)


def make_tour(total_guests=4, *, summary=None, **collections):
    """Build a fully loaded tour; unspecified subcollections are empty."""
    now = utcnow()
    values = {
        "id": "tour-1",
        "tour_code": "T-1",
        "start_date": dt.date(2025, 1, 1),
        "end_date": dt.date(2025, 1, 2),
        "adults": total_guests,
        "total_guests": total_guests,
        "destinations": [],
        "expenses": [],
        "meals": [],
        "allowances": [],
        "shoppings": [],
        "summary": summary or TourSummary(),
        "created_at": now,
        "updated_at": now,
    }
    values.update(collections)
    return Tour(**values)


class TestClampGuests:
    """Per-row guest clamping."""

    @pytest.mark.parametrize(
        "guests, tour_guests, expected",
        [
            (10, 4, 4),
            (-1, 4, 0),
            (2, 4, 2),
            (7, 0, 7),
            (None, 4, 4),
            ("3", 4, 4),
            (True, 4, 4),
        ],
    )
    def test_clamp(self, guests, tour_guests, expected):
        assert clamp_guests(guests, tour_guests) == expected


class TestCalculateSummary:
    """Totals over loaded line items."""

    def test_guest_rows_are_clamped(self):
        tour = make_tour(
            4,
            destinations=[Destination(price=100, guests=10), Destination(price=50, guests=-1)],
        )
        assert calculate_summary(tour).total_tabs == 400

    def test_no_tour_guests_keeps_row_count(self):
        tour = make_tour(0, meals=[Meal(price=100, guests=7)])
        assert calculate_summary(tour).total_tabs == 700

    def test_missing_row_guests_bills_every_guest(self):
        tour = make_tour(3, expenses=[Expense(price=20)])
        assert calculate_summary(tour).total_tabs == 60

    def test_allowances_use_quantity_not_guests(self):
        tour = make_tour(
            10,
            allowances=[
                Allowance(price=300, quantity=None),
                Allowance(price=300, quantity=0),
                Allowance(price=300, quantity=3),
            ],
        )
        assert calculate_summary(tour).total_tabs == 1200

    def test_shoppings_are_not_billed(self):
        tour = make_tour(2, shoppings=[TourShopping(name="Silk", price=1_000_000)])
        assert calculate_summary(tour).total_tabs == 0

    def test_sums_every_collection(self):
        tour = make_tour(
            2,
            destinations=[Destination(price=10)],
            expenses=[Expense(price=20)],
            meals=[Meal(price=30, guests=1)],
            allowances=[Allowance(price=40)],
        )
        assert calculate_summary(tour).total_tabs == 20 + 40 + 30 + 40

    def test_cascade_uses_existing_inputs(self):
        """Test the documented cascade example end to end."""
        tour = make_tour(
            1,
            expenses=[Expense(price=1_000_000)],
            summary=TourSummary(
                advance_payment=200_000,
                company_tip=30_000,
                collections_for_company=50_000,
                # Stale derived values are ignored
                total_tabs=5,
                final_total=5,
            ),
        )
        summary = calculate_summary(tour)
        assert summary.total_tabs == 1_000_000
        assert summary.total_after_advance == 800_000
        assert summary.total_after_collections == 750_000
        assert summary.total_after_tip == 780_000
        assert summary.final_total == 780_000

    def test_is_deterministic(self):
        tour = make_tour(3, destinations=[Destination(price=0.1, guests=2)] * 7)
        assert calculate_summary(tour) == calculate_summary(tour)

    def test_refuses_unloaded_tour(self):
        tour = make_tour(2).model_copy(update={"destinations": None})
        with pytest.raises(IncompleteTourError):
            calculate_summary(tour)


class TestCascade:

    def test_order(self):
        summary = cascade(
            1_000_000, advance_payment=200_000, company_tip=30_000, collections_for_company=50_000
        )
        assert summary.model_dump() == {
            "total_tabs": 1_000_000,
            "advance_payment": 200_000,
            "total_after_advance": 800_000,
            "company_tip": 30_000,
            "total_after_tip": 780_000,
            "collections_for_company": 50_000,
            "total_after_collections": 750_000,
            "final_total": 780_000,
        }

    def test_summary_inputs_default_to_zero(self):
        assert summary_inputs(None) == {
            "advance_payment": 0.0,
            "company_tip": 0.0,
            "collections_for_company": 0.0,
        }
        assert summary_inputs({"company_tip": 5, "advance_payment": None})["company_tip"] == 5.0


class TestEnrich:

    def test_recomputes_loaded_tour(self):
        tour = make_tour(2, meals=[Meal(price=10)])
        assert enrich_tour_with_summary(tour).summary.total_tabs == 20

    def test_keeps_stored_summary_of_listed_tour(self):
        stored = TourSummary(total_tabs=99, final_total=99)
        tour = make_tour(2, summary=stored).model_copy(update={"meals": None})
        assert enrich_tour_with_summary(tour).summary == stored
