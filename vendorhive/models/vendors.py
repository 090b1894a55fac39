"""
Vendor table - business profile owned by one vendor-role user.
"""
from typing import Optional

from sqlalchemy import Integer, String, Text, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column

from vendorhive.lib.db import Base


class VendorRow(Base):
    """
    Vendor entity (1:1 with UserRow).
    rating/review_count/rating_total are maintained by review submissions only.
    """
    __tablename__ = "vendors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    business_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    service_tags: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    business_hours: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="Opening hours: {mon: '09:00-18:00', ...}",
    )
    cover_image: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Aggregates
    rating: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rating_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<VendorRow(id={self.id}, business_name={self.business_name}, rating={self.rating})>"
