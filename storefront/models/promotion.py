from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship
from storefront.database import Base


class FreeProduct(Base):
    """Gift-with-purchase rule: the product is added for free while the
    cart subtotal sits inside ``[min_order_value, max_order_value]``."""

    __tablename__ = "free_products"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), unique=True, nullable=False)
    min_order_value = Column(Float, nullable=False)
    # NULL means no upper limit
    max_order_value = Column(Float, nullable=True)
    enabled = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    product = relationship("Product", lazy="joined")


class GiftPopup(Base):
    __tablename__ = "gift_popups"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    sub_title = Column(String(255), nullable=False, default="")
    active = Column(Boolean, default=True, nullable=False)
    min_cart_value = Column(Float, nullable=False, default=0)
    max_cart_value = Column(Float, nullable=True)
    max_selectable_gifts = Column(Integer, nullable=False, default=2)
    # ordered list of product ids offered in the popup
    gift_products = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
