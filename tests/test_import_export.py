"""Export/import round trips between backends, and whole-store clearing."""

import datetime as dt

import pytest

from tourdesk.errors import DuplicateNameError
from tourdesk.schemas import EntityKind

pytestmark = pytest.mark.asyncio


async def populate(store):
    """Write a small but fully cross-referenced data set."""
    province = await store.create(EntityKind.PROVINCE, {"name": "Quảng Bình"})
    await store.create(
        EntityKind.TOURIST_DESTINATION,
        {"name": "Phong Nha", "price": 150000, "province_ref": {"id": province.id}},
    )
    category = await store.create(EntityKind.EXPENSE_CATEGORY, {"name": "Vé tham quan"})
    await store.create(
        EntityKind.DETAILED_EXPENSE,
        {"name": "Vé Phong Nha", "price": 150000, "category_ref": {"id": category.id}},
    )
    guide = await store.create(EntityKind.GUIDE, {"name": "Nguyễn Hồng Phúc"})
    inactive = await store.create(EntityKind.GUIDE, {"name": "Trần Minh Anh"})
    await store.toggle_status(EntityKind.GUIDE, inactive.id)
    company = await store.create(EntityKind.COMPANY, {"name": "Tonkin Travel"})
    nationality = await store.create(EntityKind.NATIONALITY, {"name": "Australia", "iso2": "AU"})

    tour = await store.create_tour({
        "tour_code": "TK-251010",
        "company_ref": {"id": company.id},
        "guide_ref": {"id": guide.id},
        "client_nationality_ref": {"id": nationality.id},
        "client_name": "Mr. David Brown",
        "adults": 4,
        "children": 1,
        "start_date": dt.date(2025, 10, 10),
        "end_date": dt.date(2025, 10, 13),
    })
    await store.add_destination(tour.id, {"name": "Phong Nha", "price": 0, "date": "2025-10-11"})
    await store.add_expense(tour.id, {"name": "Vé tham quan Phong Nha", "price": 1500000})
    await store.add_meal(tour.id, {"name": "Ăn tối Huế Tui", "price": 430000, "guests": 4})
    await store.add_allowance(tour.id, {"name": "Quảng Bình", "price": 300000})
    await store.add_shopping(tour.id, {"name": "Silk", "price": 90000})
    await store.update_tour(tour.id, {"summary": {"advance_payment": 1000000, "company_tip": 50000}})


def catalog_view(snapshot):
    """Names and statuses per kind, plus the names refs point at."""
    view = {}
    for kind in EntityKind:
        view[kind.value] = sorted(
            (r["name"], r["status"], r.get("province_ref", {}).get("name_at_booking"),
             r.get("category_ref", {}).get("name_at_booking"))
            for r in snapshot[kind.value]
        )
    return view


def tour_view(tour):
    return {
        "tour_code": tour["tour_code"],
        "refs": [tour[f]["name_at_booking"] for f in ("company_ref", "guide_ref", "client_nationality_ref")],
        "total_guests": tour["total_guests"],
        "total_days": tour["total_days"],
        "items": {c: [i["name"] for i in tour[c]] for c in ("destinations", "expenses", "meals", "allowances", "shoppings")},
        "summary": tour["summary"],
    }


@pytest.mark.parametrize("source_backend, target_backend", [
    ("local", "remote"),
    ("remote", "local"),
    ("local", "local"),
])
async def test_round_trip(store_factory, source_backend, target_backend):
    """Test that an import into an empty store reproduces the exported data."""
    source = await store_factory(source_backend, "source")
    target = await store_factory(target_backend, "target")
    await populate(source)
    snapshot = await source.export_data()

    counts = await target.import_data(snapshot)
    assert counts["tours"] == 1
    assert counts["guides"] == 2

    copied = await target.export_data()
    assert catalog_view(copied) == catalog_view(snapshot)
    assert [tour_view(t) for t in copied["tours"]] == [tour_view(t) for t in snapshot["tours"]]

    # Refs point at the new records, not the source ids
    [tour] = await target.list_tours()
    [company] = await target.list(EntityKind.COMPANY)
    assert tour.company_ref.id == company.id
    [destination] = await target.list(EntityKind.TOURIST_DESTINATION)
    [province] = await target.list(EntityKind.PROVINCE)
    assert destination.province_ref.id == province.id


async def test_round_trip_summary_values(local_store):
    await populate(local_store)
    [tour] = (await local_store.export_data())["tours"]
    # 5 guests: expense 1.5M x5, meal 430k x4, allowance 300k
    assert tour["summary"]["total_tabs"] == 7_500_000 + 1_720_000 + 300_000
    assert tour["summary"]["final_total"] == 9_520_000 - 1_000_000 + 50_000


async def test_refs_to_unknown_records_are_cleared(store):
    snapshot = {
        "tours": [{
            "tour_code": "AT-250901",
            "guide_ref": {"id": "gone", "name_at_booking": "Cao Hữu Tú"},
            "adults": 2,
            "start_date": "2025-08-20",
            "end_date": "2025-08-25",
            "meals": [{"id": "m1", "name": "Ăn trưa", "price": 100}],
        }],
    }
    await store.import_data(snapshot)

    [tour] = await store.list_tours(include_details=True)
    assert tour.guide_ref.id == ""
    assert tour.guide_ref.name_at_booking == "Cao Hữu Tú"
    assert tour.meals[0].id != "m1"
    assert tour.summary.total_tabs == 200
    assert tour.total_days == 6


async def test_import_is_atomic(store):
    """Test that a collision late in the snapshot leaves the store untouched."""
    snapshot = {
        "guides": [{"name": "Cao Hữu Tú"}],
        "provinces": [{"name": "Huế"}, {"name": "HUẾ"}],
    }
    with pytest.raises(DuplicateNameError):
        await store.import_data(snapshot)

    assert await store.list(EntityKind.GUIDE) == []
    assert await store.list(EntityKind.PROVINCE) == []


async def test_clear_all_data(store):
    await populate(store)
    await store.clear_all_data()

    snapshot = await store.export_data()
    assert all(records == [] for records in snapshot.values())
