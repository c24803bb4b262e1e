"""Vehicle model: a customer's car registered with the shop."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from autoshop.database import Base


class Vehicle(Base):
    """A vehicle owned by one customer. Appointments and projects point at it."""

    __tablename__ = "vehicles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)

    # Identification
    vin: Mapped[str] = mapped_column(String(17), unique=True, index=True, nullable=False)
    license_plate: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # Details
    make: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Vehicle {self.id} {self.license_plate}>"
