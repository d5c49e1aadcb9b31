import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from storefront.errors import (
    ValidationError, NotFoundError, CouponNotFound, CouponInactive,
    CouponOutOfWindow, CouponUsageExhausted, CouponBelowMinimum,
)
from storefront.models.coupon import Coupon, UNLIMITED_USES
from storefront.schemas.coupon import CouponCreate, CouponUpdate
from storefront.services.discount_calculator import DiscountCalculator

logger = logging.getLogger(__name__)


def _as_utc(dt: datetime) -> datetime:
    # sqlite hands back naive datetimes; everything is stored as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def normalize_code(code: str) -> str:
    return code.strip().upper()


class CouponService:
    """Service class for coupon administration, validation and redemption"""

    @staticmethod
    def create_coupon(db: Session, coupon_data: CouponCreate) -> Coupon:
        code = normalize_code(coupon_data.code)
        if CouponService.get_by_code(db, code):
            raise ValidationError("Coupon code already exists")

        max_uses = UNLIMITED_USES if coupon_data.max_uses is None else coupon_data.max_uses
        CouponService._validate_coupon_fields(
            coupon_data.discount_type, coupon_data.discount_amount, max_uses,
            coupon_data.start_date, coupon_data.end_date,
        )

        db_coupon = Coupon(
            code=code,
            description=coupon_data.description,
            discount_type=coupon_data.discount_type,
            discount_amount=coupon_data.discount_amount,
            minimum_cart_value=coupon_data.minimum_cart_value or 0,
            max_uses=max_uses,
            used_count=0,
            start_date=_as_utc(coupon_data.start_date),
            end_date=_as_utc(coupon_data.end_date),
            is_active=True if coupon_data.is_active is None else coupon_data.is_active,
        )
        db.add(db_coupon)
        db.commit()
        db.refresh(db_coupon)
        logger.info("Created coupon %s (%s %s)", code, db_coupon.discount_type, db_coupon.discount_amount)
        return db_coupon

    @staticmethod
    def get_coupon(db: Session, coupon_id: int) -> Optional[Coupon]:
        return db.query(Coupon).filter(Coupon.id == coupon_id).first()

    @staticmethod
    def get_by_code(db: Session, code: str) -> Optional[Coupon]:
        return db.query(Coupon).filter(Coupon.code == normalize_code(code)).first()

    @staticmethod
    def get_coupons(db: Session) -> List[Coupon]:
        # newest first
        return db.query(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()

    @staticmethod
    def update_coupon(db: Session, coupon_id: int, coupon_data: CouponUpdate) -> Optional[Coupon]:
        db_coupon = CouponService.get_coupon(db, coupon_id)
        if not db_coupon:
            return None

        changes = coupon_data.model_dump(exclude_unset=True, exclude_none=True)
        if "code" in changes:
            changes["code"] = normalize_code(changes["code"])
            if changes["code"] != db_coupon.code and CouponService.get_by_code(db, changes["code"]):
                raise ValidationError("Coupon code already exists")

        # Compute final fields then validate
        CouponService._validate_coupon_fields(
            changes.get("discount_type", db_coupon.discount_type),
            changes.get("discount_amount", db_coupon.discount_amount),
            changes.get("max_uses", db_coupon.max_uses),
            changes.get("start_date", db_coupon.start_date),
            changes.get("end_date", db_coupon.end_date),
        )

        for field, value in changes.items():
            if field in ("start_date", "end_date"):
                value = _as_utc(value)
            setattr(db_coupon, field, value)

        db.commit()
        db.refresh(db_coupon)
        return db_coupon

    @staticmethod
    def delete_coupon(db: Session, coupon_id: int) -> bool:
        db_coupon = CouponService.get_coupon(db, coupon_id)
        if not db_coupon:
            return False
        db.delete(db_coupon)
        db.commit()
        return True

    @staticmethod
    def validate(db: Session, code: str, cart_value: float, now: Optional[datetime] = None) -> Tuple[Coupon, float]:
        """
        Check that ``code`` can be used on a cart worth ``cart_value`` and
        return the coupon with the discount it would give. Read-only: the
        usage counter is only touched by ``redeem``.
        """
        coupon = CouponService.get_by_code(db, code)
        if not coupon:
            logger.info("Coupon not found: %s", code)
            raise CouponNotFound()
        CouponService.ensure_redeemable(coupon, now)

        if cart_value < coupon.minimum_cart_value:
            logger.info("Minimum cart value not met for %s: %s < %s", coupon.code, cart_value, coupon.minimum_cart_value)
            raise CouponBelowMinimum(coupon.minimum_cart_value, cart_value)

        discount = DiscountCalculator.calculate_discount(coupon, cart_value)
        logger.info("Coupon %s valid for cart value %s (discount %s)", coupon.code, cart_value, discount)
        return coupon, float(discount)

    @staticmethod
    def ensure_redeemable(coupon: Coupon, now: Optional[datetime] = None) -> None:
        now = now or datetime.now(timezone.utc)
        if not coupon.is_active:
            raise CouponInactive()
        if now < _as_utc(coupon.start_date) or now > _as_utc(coupon.end_date):
            raise CouponOutOfWindow()
        if not coupon.unlimited and coupon.used_count >= coupon.max_uses:
            raise CouponUsageExhausted()

    @staticmethod
    def redeem(db: Session, code: str) -> Coupon:
        """
        Count one use of ``code``. The increment is a single conditional
        UPDATE, so concurrent checkouts cannot push used_count past max_uses.
        """
        code = normalize_code(code)
        result = db.execute(
            update(Coupon)
            .where(Coupon.code == code)
            .where(or_(Coupon.max_uses == UNLIMITED_USES, Coupon.used_count < Coupon.max_uses))
            .values(used_count=Coupon.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()

        coupon = CouponService.get_by_code(db, code)
        if coupon is None:
            raise CouponNotFound("Coupon not found")
        if result.rowcount == 0:
            logger.warning("Refused redemption of %s: usage limit reached", code)
            raise CouponUsageExhausted()

        db.refresh(coupon)
        logger.info("Redeemed coupon %s (%s/%s)", code, coupon.used_count, coupon.max_uses)
        return coupon

    @staticmethod
    def get_or_404(db: Session, coupon_id: int) -> Coupon:
        coupon = CouponService.get_coupon(db, coupon_id)
        if not coupon:
            raise NotFoundError("Coupon not found")
        return coupon

    @staticmethod
    def _validate_coupon_fields(discount_type: str, discount_amount: float, max_uses: int,
                                start_date: datetime, end_date: datetime) -> None:
        if discount_type == 'percentage' and (discount_amount <= 0 or discount_amount > 100):
            raise ValidationError("Percentage discount must be greater than 0 and at most 100")
        if discount_type == 'fixed' and discount_amount <= 0:
            raise ValidationError("Fixed discount must be greater than 0")
        if max_uses != UNLIMITED_USES and max_uses < 1:
            raise ValidationError("maxUses must be -1 (unlimited) or a positive integer")
        if _as_utc(start_date) >= _as_utc(end_date):
            raise ValidationError("End date must be after start date")
