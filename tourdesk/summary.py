"""Tour financial aggregation.

Folds a tour's line items into the cascading settlement summary. The
functions here are pure: the same tour state always yields the same summary,
whichever backend loaded it.
"""
from __future__ import annotations

import math
from typing import Iterable, Mapping

from .errors import IncompleteTourError
from .schemas import SUMMARY_INPUTS, Allowance, GuestLineItem, Tour, TourSummary


def clamp_guests(guests: object, tour_guests: int) -> float:
    """Guest count a row is billed for.

    A missing (non-numeric) count bills every guest of the tour. When the tour
    has no guests recorded the row count is used as-is; otherwise it is
    bounded to [0, tour_guests].
    """
    if isinstance(guests, bool) or not isinstance(guests, (int, float)):
        return tour_guests
    if tour_guests == 0:
        return guests
    return min(max(guests, 0), tour_guests)


def guest_rows_total(rows: Iterable[GuestLineItem], tour_guests: int) -> float:
    return math.fsum(row.price * clamp_guests(row.guests, tour_guests) for row in rows)


def allowances_total(rows: Iterable[Allowance]) -> float:
    # Per-diem rows are billed per unit, never per guest
    return math.fsum(row.price * (1 if row.quantity is None else row.quantity) for row in rows)


def cascade(
    total_tabs: float,
    *,
    advance_payment: float = 0,
    company_tip: float = 0,
    collections_for_company: float = 0,
) -> TourSummary:
    """Apply the settlement cascade in its fixed order.

    advance is subtracted first, then collections, then the tip is added.
    """
    total_after_advance = total_tabs - advance_payment
    total_after_collections = total_after_advance - collections_for_company
    total_after_tip = total_after_collections + company_tip
    return TourSummary(
        total_tabs=total_tabs,
        advance_payment=advance_payment,
        total_after_advance=total_after_advance,
        company_tip=company_tip,
        total_after_tip=total_after_tip,
        collections_for_company=collections_for_company,
        total_after_collections=total_after_collections,
        final_total=total_after_tip,
    )


def summary_inputs(summary: TourSummary | Mapping[str, object] | None) -> dict[str, float]:
    """Extract the three user-entered figures, defaulting to 0."""
    if summary is None:
        return {key: 0.0 for key in SUMMARY_INPUTS}
    if isinstance(summary, TourSummary):
        summary = summary.model_dump()
    inputs = {}
    for key in SUMMARY_INPUTS:
        value = summary.get(key)
        inputs[key] = 0.0 if value is None else float(value)
    return inputs


def calculate_summary(tour: Tour) -> TourSummary:
    """Compute the full summary of a tour from its line items.

    Args:
        tour: Tour with all financial subcollections loaded (empty lists are fine)

    Returns:
        A fresh TourSummary; user-entered inputs are carried over from tour.summary

    Raises:
        IncompleteTourError: If any financial subcollection is not loaded
    """
    if not tour.has_details:
        raise IncompleteTourError(
            f"Tour {tour.id} was loaded without line items; refusing to compute its summary"
        )

    tour_guests = tour.total_guests or 0
    total_tabs = (
        guest_rows_total(tour.destinations, tour_guests)
        + guest_rows_total(tour.expenses, tour_guests)
        + guest_rows_total(tour.meals, tour_guests)
        + allowances_total(tour.allowances)
    )
    return cascade(total_tabs, **summary_inputs(tour.summary))


def enrich_tour_with_summary(tour: Tour) -> Tour:
    """Return the tour with a recomputed summary when its details are loaded.

    Tours listed without details keep their persisted summary.
    """
    if not tour.has_details:
        return tour
    return tour.model_copy(update={"summary": calculate_summary(tour)})
