from decimal import Decimal, getcontext

from storefront.models.coupon import Coupon

getcontext().prec = 28


def D(x) -> Decimal:
    return Decimal(str(x))


class DiscountCalculator:
    """Discount amounts for a coupon against a cart value"""

    @staticmethod
    def percentage_discount(cart_value, percent) -> Decimal:
        return (D(cart_value) * D(percent)) / D(100)

    @staticmethod
    def fixed_discount(amount) -> Decimal:
        # not capped at the cart value; the checkout clamps the total at zero
        return D(amount)

    @staticmethod
    def calculate_discount(coupon: Coupon, cart_value) -> Decimal:
        if coupon.discount_type == 'percentage':
            return DiscountCalculator.percentage_discount(cart_value, coupon.discount_amount)
        return DiscountCalculator.fixed_discount(coupon.discount_amount)
