import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.errors import ValidationError, NotFoundError
from storefront.models.product import Product
from storefront.models.promotion import FreeProduct, GiftPopup
from storefront.schemas.promotion import FreeProductCreate, FreeProductUpdate, GiftPopupUpdate
from storefront.services.product_service import ProductService

logger = logging.getLogger(__name__)

DEFAULT_GIFT_POPUP = {
    "title": "Claim Your Complimentary Gift",
    "sub_title": "Choose Any 2",
    "active": False,
    "min_cart_value": 1000,
    "max_cart_value": None,
    "max_selectable_gifts": 2,
    "gift_products": [],
}


class FreeProductService:
    """Gift-with-purchase rules"""

    @staticmethod
    def list_rules(db: Session, include_disabled: bool = False) -> List[FreeProduct]:
        q = db.query(FreeProduct)
        if not include_disabled:
            q = q.filter(FreeProduct.enabled == True)  # noqa: E712
        return q.order_by(FreeProduct.min_order_value, FreeProduct.id).all()

    @staticmethod
    def get_rule(db: Session, rule_id: int, include_disabled: bool = False) -> FreeProduct:
        rule = db.query(FreeProduct).filter(FreeProduct.id == rule_id).first()
        if not rule or (not include_disabled and not rule.enabled):
            raise NotFoundError("Free product not found")
        return rule

    @staticmethod
    def get_rule_for_product(db: Session, product_id: int) -> Optional[FreeProduct]:
        return db.query(FreeProduct).filter(FreeProduct.product_id == product_id).first()

    @staticmethod
    def create_rule(db: Session, data: FreeProductCreate) -> FreeProduct:
        FreeProductService._validate_band(data.min_order_value, data.max_order_value)
        ProductService.get_or_404(db, data.product_id)
        if FreeProductService.get_rule_for_product(db, data.product_id):
            raise ValidationError("This product is already set up as a free product")

        rule = FreeProduct(
            product_id=data.product_id,
            min_order_value=data.min_order_value,
            max_order_value=data.max_order_value or None,
            enabled=data.enabled,
        )
        db.add(rule)
        db.commit()
        db.refresh(rule)
        logger.info("Created free product rule %s for product %s", rule.id, rule.product_id)
        return rule

    @staticmethod
    def update_rule(db: Session, rule_id: int, data: FreeProductUpdate) -> FreeProduct:
        rule = FreeProductService.get_rule(db, rule_id, include_disabled=True)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("product_id") is not None and changes["product_id"] != rule.product_id:
            ProductService.get_or_404(db, changes["product_id"])
            if FreeProductService.get_rule_for_product(db, changes["product_id"]):
                raise ValidationError("This product is already set up as a free product in another entry")

        if "max_order_value" in changes:
            changes["max_order_value"] = changes["max_order_value"] or None
        FreeProductService._validate_band(
            changes.get("min_order_value", rule.min_order_value),
            changes.get("max_order_value", rule.max_order_value),
        )

        for field, value in changes.items():
            if value is None and field not in ("max_order_value",):
                continue
            setattr(rule, field, value)
        db.commit()
        db.refresh(rule)
        return rule

    @staticmethod
    def delete_rule(db: Session, rule_id: int) -> None:
        rule = FreeProductService.get_rule(db, rule_id, include_disabled=True)
        db.delete(rule)
        db.commit()

    @staticmethod
    def _validate_band(min_order_value: float, max_order_value: Optional[float]) -> None:
        if min_order_value is None or min_order_value <= 0:
            raise ValidationError("Minimum order value must be greater than zero")
        if max_order_value is not None and max_order_value <= min_order_value:
            raise ValidationError("Maximum order value must be greater than minimum order value")


class GiftPopupService:
    """Singleton gift-selection popup configuration"""

    @staticmethod
    def get_config(db: Session) -> GiftPopup:
        config = db.query(GiftPopup).order_by(GiftPopup.id).first()
        if config is None:
            logger.info("Creating default gift popup configuration")
            config = GiftPopup(**DEFAULT_GIFT_POPUP)
            db.add(config)
            db.commit()
            db.refresh(config)
        return config

    @staticmethod
    def update_config(db: Session, data: GiftPopupUpdate) -> GiftPopup:
        gifts = list(dict.fromkeys(data.gift_products))
        if gifts and data.max_selectable_gifts > len(gifts):
            raise ValidationError(
                f"Maximum selectable gifts ({data.max_selectable_gifts}) cannot exceed "
                f"the number of available gift products ({len(gifts)})"
            )
        if data.max_cart_value is not None and data.max_cart_value < data.min_cart_value:
            raise ValidationError("Maximum cart value must not be below minimum cart value")
        missing = set(gifts) - {p.id for p in ProductService.get_many(db, gifts)}
        if missing:
            raise ValidationError(f"Unknown gift products: {sorted(missing)}")

        config = GiftPopupService.get_config(db)
        values = data.model_dump()
        values["gift_products"] = gifts
        for field, value in values.items():
            setattr(config, field, value)
        db.commit()
        db.refresh(config)
        return config

    @staticmethod
    def gift_products(db: Session) -> List[Product]:
        config = GiftPopupService.get_config(db)
        return ProductService.get_many(db, list(config.gift_products or []))
