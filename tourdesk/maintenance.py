"""Maintenance jobs over every tour in a store.

Both jobs are safe to re-run: they only rewrite values derivable from the
stored tour.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from .errors import StorageError, TourDeskError
from .schemas import inclusive_days
from .stores.base import DataStore
from .summary import calculate_summary

logger = logging.getLogger(__name__)


@dataclass
class RecalculationReport:
    """Result of `recalculate_all_summaries`."""
    total: int = 0
    updated: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)


async def recalculate_all_summaries(store: DataStore) -> RecalculationReport:
    """Recompute and persist the summary of every tour.

    A failure on one tour is recorded in the report and does not stop the
    others.
    """
    tours = await store.list_tours(include_details=True)
    report = RecalculationReport(total=len(tours))
    logger.info(f"Recalculating summaries for {len(tours)} tours")

    for tour in tours:
        try:
            await store.update_tour(tour.id, {"summary": calculate_summary(tour)})
        except (TourDeskError, StorageError, ValidationError) as e:
            logger.error(f"Failed to recalculate {tour.tour_code}: {e}")
            report.errors.append({"tour_code": tour.tour_code, "error": str(e)})
            continue
        report.updated += 1
        logger.debug(f"Updated {tour.tour_code} ({report.updated}/{report.total})")

    logger.info(f"Recalculation complete: {report.updated}/{report.total} tours updated")
    return report


async def backfill_total_days(store: DataStore) -> dict[str, int]:
    """Rewrite `total_days` wherever it disagrees with the tour's dates.

    Returns:
        {"updated": n, "unchanged": m}
    """
    updated = unchanged = 0
    for tour in await store.list_tours():
        if tour.total_days == inclusive_days(tour.start_date, tour.end_date):
            unchanged += 1
            continue
        # update_tour derives total_days from the dates
        await store.update_tour(tour.id, {})
        updated += 1

    logger.info(f"Backfill complete. Updated: {updated}, Unchanged: {unchanged}")
    return {"updated": updated, "unchanged": unchanged}
