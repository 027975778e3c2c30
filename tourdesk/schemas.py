"""Domain models shared by both storage backends.

Pydantic models for catalog entities, the Tour aggregate and its line items,
plus the registry that drives the uniform catalog repository.
"""
from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field


def new_id() -> str:
    """Fresh opaque identifier."""
    return uuid.uuid4().hex


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def inclusive_days(start: dt.date, end: dt.date) -> int:
    """Number of calendar days covered by a tour, counting both ends.

    Reversed dates count the same span as the ordered pair.
    """
    return abs((end - start).days) + 1


class EntityStatus(str, Enum):
    """Catalog record status."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class EntityKind(str, Enum):
    """Catalog kinds, in dependency order (referenced kinds first)."""
    GUIDE = "guides"
    COMPANY = "companies"
    NATIONALITY = "nationalities"
    PROVINCE = "provinces"
    TOURIST_DESTINATION = "tourist_destinations"
    SHOPPING = "shoppings"
    EXPENSE_CATEGORY = "expense_categories"
    DETAILED_EXPENSE = "detailed_expenses"


class EntityRef(BaseModel):
    """Snapshot of a catalog record taken when a tour (or record) points at it.

    `name_at_booking` is never refreshed from the referenced record.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = ""
    name_at_booking: str = ""


# ---------------------------------------------------------------------------
# Catalog inputs and records
# ---------------------------------------------------------------------------

class CatalogInput(BaseModel):
    """Fields a caller supplies when creating a catalog record."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str = Field(min_length=1, max_length=255)


class GuideInput(CatalogInput):
    phone: str = ""
    note: str = ""


class CompanyInput(CatalogInput):
    contact_name: str = ""
    phone: str = ""
    email: str = ""
    note: str = ""


class NationalityInput(CatalogInput):
    iso2: str | None = Field(default=None, max_length=2)
    emoji: str | None = None


class ProvinceInput(CatalogInput):
    pass


class TouristDestinationInput(CatalogInput):
    price: float = Field(default=0, ge=0)
    province_ref: EntityRef = Field(default_factory=EntityRef)


class ShoppingInput(CatalogInput):
    price: float = Field(default=0, ge=0)


class ExpenseCategoryInput(CatalogInput):
    pass


class DetailedExpenseInput(CatalogInput):
    price: float = Field(default=0, ge=0)
    category_ref: EntityRef = Field(default_factory=EntityRef)


class MasterEntity(BaseModel):
    """Fields every stored catalog record carries."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: str
    name: str = Field(min_length=1, max_length=255)
    status: EntityStatus = EntityStatus.ACTIVE
    search_keywords: list[str] = Field(default_factory=list)
    created_at: dt.datetime
    updated_at: dt.datetime


class Guide(MasterEntity, GuideInput):
    pass


class Company(MasterEntity, CompanyInput):
    pass


class Nationality(MasterEntity, NationalityInput):
    pass


class Province(MasterEntity, ProvinceInput):
    pass


class TouristDestination(MasterEntity, TouristDestinationInput):
    pass


class Shopping(MasterEntity, ShoppingInput):
    pass


class ExpenseCategory(MasterEntity, ExpenseCategoryInput):
    pass


class DetailedExpense(MasterEntity, DetailedExpenseInput):
    pass


@dataclass(frozen=True)
class CatalogKind:
    """Registry entry describing one catalog kind."""
    kind: EntityKind
    label: str
    model: type[MasterEntity]
    input_model: type[CatalogInput]
    # EntityRef fields -> kind they point at
    refs: Mapping[str, EntityKind] = field(default_factory=dict)
    # Deleting flips status to inactive instead of removing the record
    soft_delete: bool = False


CATALOG: dict[EntityKind, CatalogKind] = {
    EntityKind.GUIDE: CatalogKind(EntityKind.GUIDE, "Guide", Guide, GuideInput),
    EntityKind.COMPANY: CatalogKind(EntityKind.COMPANY, "Company", Company, CompanyInput),
    EntityKind.NATIONALITY: CatalogKind(
        EntityKind.NATIONALITY, "Nationality", Nationality, NationalityInput
    ),
    EntityKind.PROVINCE: CatalogKind(EntityKind.PROVINCE, "Province", Province, ProvinceInput),
    EntityKind.TOURIST_DESTINATION: CatalogKind(
        EntityKind.TOURIST_DESTINATION,
        "Tourist destination",
        TouristDestination,
        TouristDestinationInput,
        refs={"province_ref": EntityKind.PROVINCE},
    ),
    EntityKind.SHOPPING: CatalogKind(EntityKind.SHOPPING, "Shopping", Shopping, ShoppingInput),
    EntityKind.EXPENSE_CATEGORY: CatalogKind(
        EntityKind.EXPENSE_CATEGORY, "Expense category", ExpenseCategory, ExpenseCategoryInput
    ),
    EntityKind.DETAILED_EXPENSE: CatalogKind(
        EntityKind.DETAILED_EXPENSE,
        "Detailed expense",
        DetailedExpense,
        DetailedExpenseInput,
        refs={"category_ref": EntityKind.EXPENSE_CATEGORY},
        soft_delete=True,
    ),
}


class SearchQuery(BaseModel):
    """Filter for catalog listings."""
    search: str | None = None
    status: Literal["active", "inactive", "all"] | None = None


# ---------------------------------------------------------------------------
# Tours
# ---------------------------------------------------------------------------

class LineCollection(str, Enum):
    """Tour subcollections."""
    DESTINATIONS = "destinations"
    EXPENSES = "expenses"
    MEALS = "meals"
    ALLOWANCES = "allowances"
    SHOPPINGS = "shoppings"


# Collections that feed the summary
SUMMARY_COLLECTIONS = (
    LineCollection.DESTINATIONS,
    LineCollection.EXPENSES,
    LineCollection.MEALS,
    LineCollection.ALLOWANCES,
)


class LineItem(BaseModel):
    """A dated, priced entry in one of a tour's subcollections."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    name: str = ""
    price: float = 0
    date: dt.date | None = None


class GuestLineItem(LineItem):
    # Per-row guest count; None means "all guests of the tour"
    guests: int | None = None
    matched_id: str | None = None
    matched_price: float | None = None


class Destination(GuestLineItem):
    pass


class Expense(GuestLineItem):
    pass


class Meal(GuestLineItem):
    pass


class Allowance(LineItem):
    quantity: int | None = None


class TourShopping(LineItem):
    pass


LINE_ITEM_MODELS: dict[LineCollection, type[LineItem]] = {
    LineCollection.DESTINATIONS: Destination,
    LineCollection.EXPENSES: Expense,
    LineCollection.MEALS: Meal,
    LineCollection.ALLOWANCES: Allowance,
    LineCollection.SHOPPINGS: TourShopping,
}


SUMMARY_INPUTS = ("advance_payment", "company_tip", "collections_for_company")


class TourSummary(BaseModel):
    """Cascading settlement figures for a tour."""
    total_tabs: float = 0
    advance_payment: float = 0
    total_after_advance: float = 0
    company_tip: float = 0
    total_after_tip: float = 0
    collections_for_company: float = 0
    total_after_collections: float = 0
    final_total: float = 0


class TourInput(BaseModel):
    """Fields a caller supplies when creating a tour."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    tour_code: str = Field(min_length=1, max_length=100)
    company_ref: EntityRef = Field(default_factory=EntityRef)
    guide_ref: EntityRef = Field(default_factory=EntityRef)
    client_nationality_ref: EntityRef = Field(default_factory=EntityRef)
    client_name: str = ""
    adults: int = Field(default=0, ge=0)
    children: int = Field(default=0, ge=0)
    driver_name: str = ""
    client_phone: str = ""
    start_date: dt.date
    end_date: dt.date
    notes: str = ""


class Tour(TourInput):
    """The tour aggregate.

    Subcollections are None when the tour was listed without details; the
    stored summary is then the only financial information available.
    """
    id: str
    total_guests: int = 0
    total_days: int = 1
    destinations: list[Destination] | None = None
    expenses: list[Expense] | None = None
    meals: list[Meal] | None = None
    allowances: list[Allowance] | None = None
    shoppings: list[TourShopping] | None = None
    summary: TourSummary = Field(default_factory=TourSummary)
    created_at: dt.datetime
    updated_at: dt.datetime

    @property
    def has_details(self) -> bool:
        return all(getattr(self, c.value) is not None for c in SUMMARY_COLLECTIONS)


# Tour fields holding EntityRef snapshots -> kind they point at
TOUR_REFS: dict[str, EntityKind] = {
    "company_ref": EntityKind.COMPANY,
    "guide_ref": EntityKind.GUIDE,
    "client_nationality_ref": EntityKind.NATIONALITY,
}


class TourQuery(BaseModel):
    """Filter for tour listings."""
    search: str | None = None
    company_id: str | None = None
    guide_id: str | None = None
    nationality_id: str | None = None
    # Tours overlapping [start_date, end_date]
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    limit: int | None = Field(default=None, ge=0)
    offset: int = Field(default=0, ge=0)
