"""Tests for demo seeding and the maintenance jobs."""

import pytest

from tourdesk.maintenance import backfill_total_days, recalculate_all_summaries
from tourdesk.schemas import EntityKind, TourSummary
from tourdesk.seed import seed_database

pytestmark = pytest.mark.asyncio


class TestSeed:

    async def test_seeds_empty_store_once(self, store):
        assert await seed_database(store) is True
        assert await seed_database(store) is False

        assert len(await store.list(EntityKind.GUIDE)) == 3
        assert len(await store.list(EntityKind.NATIONALITY)) == 5
        tours = {t.tour_code: t for t in await store.list_tours()}
        assert sorted(tours) == ["AT-250901", "TK-251010"]

    async def test_seeded_totals(self, store):
        await seed_database(store)
        tours = {t.tour_code: t for t in await store.list_tours(include_details=True)}

        at = tours["AT-250901"]
        assert at.total_guests == 8
        assert at.total_days == 6
        assert at.company_ref.name_at_booking == "Asia Top Travel"
        assert at.summary.total_tabs == 1_600_000 + 3_200_000 + 300_000

        tk = tours["TK-251010"]
        assert tk.total_guests == 5
        assert tk.summary.total_tabs == 7_500_000 + 2_150_000 + 300_000


class TestRecalculate:

    async def test_restores_stale_summaries(self, store):
        await seed_database(store)
        [tour, _] = await store.list_tours()
        async with store._unit_of_work() as session:
            await store._store_summary(session, tour.id, TourSummary(total_tabs=1, final_total=1))

        report = await recalculate_all_summaries(store)

        assert report.total == 2
        assert report.updated == 2
        assert report.errors == []
        refreshed = {t.id: t for t in await store.list_tours()}
        assert refreshed[tour.id].summary.total_tabs == 9_950_000

    async def test_empty_store(self, store):
        report = await recalculate_all_summaries(store)
        assert (report.total, report.updated) == (0, 0)


class TestBackfillTotalDays:

    async def test_fixes_only_wrong_rows(self, store, tour_data):
        good = await store.create_tour(tour_data)
        bad = await store.create_tour({**tour_data, "tour_code": "BAD-1"})
        async with store._unit_of_work() as session:
            tour = await store._load_tour(session, bad.id)
            await store._save_tour(session, tour.model_copy(update={"total_days": 99}))

        assert await backfill_total_days(store) == {"updated": 1, "unchanged": 1}

        tours = {t.id: t for t in await store.list_tours()}
        assert tours[bad.id].total_days == 3
        assert tours[good.id].total_days == 3
