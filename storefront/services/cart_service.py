import logging
from typing import Optional

from sqlalchemy.orm import Session

from storefront.eligibility import in_band
from storefront.errors import ValidationError, NotFoundError
from storefront.models.cart import Cart, CartItem, GiftSource
from storefront.schemas.cart import CartItemCreate
from storefront.services.product_service import ProductService
from storefront.services.promotion_service import FreeProductService, GiftPopupService

logger = logging.getLogger(__name__)


class CartService:
    """Session-scoped carts and their lines"""

    @staticmethod
    def get_or_create_cart(db: Session, session_id: Optional[str] = None, user_id: Optional[str] = None) -> Cart:
        if not session_id and not user_id:
            raise ValidationError("sessionId or userId required")

        q = db.query(Cart)
        # a signed-in user's cart wins over the anonymous session cart
        q = q.filter(Cart.user_id == user_id) if user_id else q.filter(Cart.session_id == session_id)
        cart = q.first()
        if cart is None:
            cart = Cart(session_id=session_id, user_id=user_id)
            db.add(cart)
            db.commit()
            db.refresh(cart)
            logger.info("Created cart %s for session=%s user=%s", cart.id, session_id, user_id)
        return cart

    @staticmethod
    def get_cart(db: Session, cart_id: int) -> Cart:
        cart = db.query(Cart).filter(Cart.id == cart_id).first()
        if not cart:
            raise NotFoundError("Cart not found")
        return cart

    @staticmethod
    def get_item(db: Session, item_id: int) -> CartItem:
        item = db.query(CartItem).filter(CartItem.id == item_id).first()
        if not item:
            raise NotFoundError("Cart item not found")
        return item

    @staticmethod
    def add_item(db: Session, data: CartItemCreate) -> CartItem:
        cart = CartService.get_cart(db, data.cart_id)
        ProductService.get_or_404(db, data.product_id)

        is_free = data.is_free or data.gift_source is not None
        gift_source = data.gift_source
        if is_free:
            gift_source = gift_source or GiftSource.free_product
            CartService._check_gift_allowed(db, cart, data.product_id, gift_source)

        existing = (
            db.query(CartItem)
            .filter(CartItem.cart_id == cart.id, CartItem.product_id == data.product_id, CartItem.is_free == is_free)
            .first()
        )
        if existing:
            # zero-price lines never go above one; paid lines merge
            if not is_free:
                existing.quantity += data.quantity
            db.commit()
            db.refresh(existing)
            return existing

        item = CartItem(
            cart_id=cart.id,
            product_id=data.product_id,
            quantity=1 if is_free else data.quantity,
            is_free=is_free,
            gift_source=gift_source if is_free else None,
        )
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def update_quantity(db: Session, item_id: int, quantity: int) -> CartItem:
        item = CartService.get_item(db, item_id)
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if item.is_free:
            CartService._check_gift_allowed(db, item.cart, item.product_id, item.gift_source)
            quantity = 1
        item.quantity = quantity
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def remove_item(db: Session, item_id: int) -> None:
        item = CartService.get_item(db, item_id)
        db.delete(item)
        db.commit()

    @staticmethod
    def clear_cart(db: Session, cart_id: int) -> int:
        CartService.get_cart(db, cart_id)
        deleted = db.query(CartItem).filter(CartItem.cart_id == cart_id).delete(synchronize_session=False)
        db.commit()
        logger.info("Cleared %s lines from cart %s", deleted, cart_id)
        return deleted

    @staticmethod
    def _check_gift_allowed(db: Session, cart: Cart, product_id: int, source: GiftSource) -> None:
        subtotal = cart.subtotal
        if source == GiftSource.gift_popup:
            config = GiftPopupService.get_config(db)
            if not config.active or product_id not in (config.gift_products or []):
                raise NotFoundError("Gift product not available")
            if not in_band(subtotal, config.min_cart_value, config.max_cart_value):
                raise ValidationError("Cart total is outside the gift eligibility range")
            return

        rule = FreeProductService.get_rule_for_product(db, product_id)
        if not rule or not rule.enabled:
            raise NotFoundError("Free product not found or disabled")
        if subtotal < rule.min_order_value:
            raise ValidationError(
                f"Minimum order value of {rule.min_order_value:g} required to add this free product"
            )
        if not in_band(subtotal, rule.min_order_value, rule.max_order_value):
            raise ValidationError(
                f"Cart total exceeds maximum order value of {rule.max_order_value:g} for this free product"
            )
