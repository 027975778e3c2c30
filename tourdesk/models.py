"""SQLAlchemy models (2.x style) for the remote relational schema.

One table per catalog kind, a `tours` parent table, and one child table per
tour subcollection. Catalog references are foreign keys plus a
`*_name_at_booking` snapshot column.
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all relational models."""
    pass


class CatalogMixin:
    """Columns shared by every catalog table."""

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Normalized name; the unique index is the authoritative duplicate check
    name_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active", index=True)
    search_keywords: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Guide(CatalogMixin, Base):
    """Tour guides."""
    __tablename__ = "guides"

    phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Company(CatalogMixin, Base):
    """Partner travel companies."""
    __tablename__ = "companies"

    contact_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Nationality(CatalogMixin, Base):
    """Client nationalities."""
    __tablename__ = "nationalities"

    iso2: Mapped[str | None] = mapped_column(String(2))
    emoji: Mapped[str | None] = mapped_column(String(16))


class Province(CatalogMixin, Base):
    """Provinces."""
    __tablename__ = "provinces"


class TouristDestination(CatalogMixin, Base):
    """Sights with an entrance price."""
    __tablename__ = "tourist_destinations"

    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    province_id: Mapped[str | None] = mapped_column(
        ForeignKey("provinces.id", ondelete="SET NULL"),
        index=True,
    )
    province_name_at_booking: Mapped[str] = mapped_column(String(255), nullable=False, default="")


class Shopping(CatalogMixin, Base):
    """Shopping stops."""
    __tablename__ = "shoppings"

    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)


class ExpenseCategory(CatalogMixin, Base):
    """Expense categories."""
    __tablename__ = "expense_categories"


class DetailedExpense(CatalogMixin, Base):
    """Priced expense items, grouped by category."""
    __tablename__ = "detailed_expenses"

    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    category_id: Mapped[str | None] = mapped_column(
        ForeignKey("expense_categories.id", ondelete="SET NULL"),
        index=True,
    )
    category_name_at_booking: Mapped[str] = mapped_column(String(255), nullable=False, default="")


class Tour(Base):
    """Tours (parent row of the line-item tables)."""
    __tablename__ = "tours"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    tour_code: Mapped[str] = mapped_column(String(100), nullable=False)
    code_key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    company_id: Mapped[str | None] = mapped_column(
        ForeignKey("companies.id", ondelete="SET NULL"), index=True
    )
    company_name_at_booking: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    guide_id: Mapped[str | None] = mapped_column(
        ForeignKey("guides.id", ondelete="SET NULL"), index=True
    )
    guide_name_at_booking: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    nationality_id: Mapped[str | None] = mapped_column(
        ForeignKey("nationalities.id", ondelete="SET NULL"), index=True
    )
    nationality_name_at_booking: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    client_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    adults: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    children: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    driver_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    client_phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    start_date: Mapped[dt.date] = mapped_column(nullable=False, index=True)
    end_date: Mapped[dt.date] = mapped_column(nullable=False)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Summary (persisted after every line-item mutation)
    total_tabs: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    advance_payment: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_after_advance: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    company_tip: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_after_tip: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    collections_for_company: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_after_collections: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    final_total: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    destinations: Mapped[list[TourDestination]] = relationship(
        back_populates="tour", cascade="all, delete-orphan", order_by="TourDestination.position"
    )
    expenses: Mapped[list[TourExpense]] = relationship(
        back_populates="tour", cascade="all, delete-orphan", order_by="TourExpense.position"
    )
    meals: Mapped[list[TourMeal]] = relationship(
        back_populates="tour", cascade="all, delete-orphan", order_by="TourMeal.position"
    )
    allowances: Mapped[list[TourAllowance]] = relationship(
        back_populates="tour", cascade="all, delete-orphan", order_by="TourAllowance.position"
    )
    shoppings: Mapped[list[TourShopping]] = relationship(
        back_populates="tour", cascade="all, delete-orphan", order_by="TourShopping.position"
    )


class LineItemMixin:
    """Columns shared by the tour child tables."""

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    # Insertion order; rows are addressed by id, never by position
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    date: Mapped[dt.date | None] = mapped_column()

    @declared_attr
    def tour_id(cls) -> Mapped[str]:
        return mapped_column(ForeignKey("tours.id", ondelete="CASCADE"), nullable=False, index=True)


class GuestRowMixin(LineItemMixin):
    guests: Mapped[int | None] = mapped_column(Integer)
    matched_id: Mapped[str | None] = mapped_column(String(32))
    matched_price: Mapped[float | None] = mapped_column(Float)


class TourDestination(GuestRowMixin, Base):
    __tablename__ = "tour_destinations"

    tour: Mapped[Tour] = relationship(back_populates="destinations")


class TourExpense(GuestRowMixin, Base):
    __tablename__ = "tour_expenses"

    tour: Mapped[Tour] = relationship(back_populates="expenses")


class TourMeal(GuestRowMixin, Base):
    __tablename__ = "tour_meals"

    tour: Mapped[Tour] = relationship(back_populates="meals")


class TourAllowance(LineItemMixin, Base):
    __tablename__ = "tour_allowances"

    quantity: Mapped[int | None] = mapped_column(Integer)

    tour: Mapped[Tour] = relationship(back_populates="allowances")


class TourShopping(LineItemMixin, Base):
    __tablename__ = "tour_shoppings"

    tour: Mapped[Tour] = relationship(back_populates="shoppings")
