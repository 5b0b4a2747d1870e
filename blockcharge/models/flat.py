"""Flat ORM model - the billable unit read by the demand generator."""

from decimal import Decimal

from sqlalchemy import Boolean, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from blockcharge.models import Base, BaseModel


class Flat(Base, BaseModel):
    """Billable unit within a building.

    Flat and resident CRUD lives outside this package; this table only carries
    the fields demand generation needs. Resident identity is denormalized here
    so that a demand can snapshot it at issue time.
    """

    __tablename__ = "flats"

    building_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    flat_number: Mapped[str] = mapped_column(String(50), nullable=False)

    area_sq_ft: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        comment="Floor area in square feet; missing area bills as zero",
    )
    ground_rent: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Fixed ground rent added to each period's demand",
    )

    resident_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    resident_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_flat_building_number", "building_id", "flat_number", unique=True),
    )

    def to_billable_unit(self):
        """Snapshot this flat as generator input."""
        from blockcharge.services.demand_generator import BillableUnit

        return BillableUnit(
            unit_id=str(self.id),
            unit_number=self.flat_number,
            area=self.area_sq_ft,
            fixed_charge=self.ground_rent or Decimal("0"),
            resident_id=self.resident_uid,
            resident_name=self.resident_name,
        )

    def __repr__(self) -> str:
        return (
            f"<Flat(id={self.id}, building_id={self.building_id!r}, "
            f"flat_number={self.flat_number!r}, area_sq_ft={self.area_sq_ft})>"
        )


__all__ = ["Flat"]
