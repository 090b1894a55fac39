"""
Service table - listings a vendor offers.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column

from vendorhive.lib.db import Base
from vendorhive.schemas import utcnow


class ServiceRow(Base):
    """
    Service entity - descriptive listing; time slots and dates are not enforced.
    """
    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vendor_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[str] = mapped_column(String(50), nullable=False)
    duration: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Scheduling metadata (descriptive only)
    time_slots: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="[{day, start_time, end_time}]",
    )
    available_dates: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="ISO dates",
    )
    availability: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<ServiceRow(id={self.id}, name={self.name}, vendor_id={self.vendor_id})>"
