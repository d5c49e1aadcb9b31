import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from storefront.database import Base


class GiftSource(str, enum.Enum):
    free_product = "free_product"
    gift_popup = "gift_popup"


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(128), nullable=True, index=True)
    user_id = Column(String(128), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    __table_args__ = (
        CheckConstraint("session_id IS NOT NULL OR user_id IS NOT NULL", name="ck_carts_owner"),
    )

    @property
    def subtotal(self) -> float:
        # zero-price lines contribute nothing
        return sum(i.line_total for i in self.items)

    @property
    def total_items(self) -> int:
        return sum(i.quantity for i in self.items)


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    # zero-price line, either auto-added or picked in the gift popup
    is_free = Column(Boolean, nullable=False, default=False)
    gift_source = Column(Enum(GiftSource, name="gift_source"), nullable=True)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product", lazy="joined")

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", "is_free", name="uq_cart_items_line"),
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity"),
    )

    @property
    def unit_price(self) -> float:
        if self.is_free or self.product is None:
            return 0.0
        return float(self.product.price)

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity
