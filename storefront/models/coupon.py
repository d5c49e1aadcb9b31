from sqlalchemy import Column, Integer, String, Float, Enum, Boolean, DateTime, Index, func
from storefront.database import Base

DiscountTypes = ("percentage", "fixed")

UNLIMITED_USES = -1


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    # always stored upper-cased
    code = Column(String(64), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=False)
    discount_type = Column(Enum(*DiscountTypes, name="discount_type"), nullable=False, default="percentage")
    discount_amount = Column(Float, nullable=False)
    minimum_cart_value = Column(Float, nullable=False, default=0)
    max_uses = Column(Integer, nullable=False, default=UNLIMITED_USES)
    used_count = Column(Integer, nullable=False, default=0)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_coupons_active_window", "is_active", "start_date", "end_date"),
    )

    @property
    def unlimited(self) -> bool:
        return self.max_uses == UNLIMITED_USES
