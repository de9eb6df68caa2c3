# storefront/services/pricing.py
"""
Order money math. Every amount is rounded half-up to cents after each step,
so the stored parts always add up to the stored total.
"""
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Tuple

from storefront.domain.enums import ShippingMethod
from storefront.utils import settings

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _default_fees() -> Dict[ShippingMethod, Decimal]:
    return {
        ShippingMethod.STANDARD: money(settings.STANDARD_SHIPPING_FEE),
        ShippingMethod.EXPRESS: money(settings.EXPRESS_SHIPPING_FEE),
        ShippingMethod.FREE_SHIPPING: ZERO,
    }


@dataclass(frozen=True)
class PricingConfig:
    tax_rate: Decimal = field(default_factory=lambda: Decimal(settings.TAX_RATE))
    free_shipping_threshold: Decimal = field(default_factory=lambda: money(settings.FREE_SHIPPING_THRESHOLD))
    shipping_fees: Dict[ShippingMethod, Decimal] = field(default_factory=_default_fees)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax_amount": self.tax_amount,
            "shipping_amount": self.shipping_amount,
            "discount_amount": self.discount_amount,
            "total_amount": self.total_amount,
        }


def line_total(unit_price, quantity: int) -> Decimal:
    return money(money(unit_price) * quantity)


def calculate_subtotal(lines: Iterable[Tuple[Decimal, int]]) -> Decimal:
    return money(sum((line_total(price, qty) for price, qty in lines), ZERO))


def estimate_tax(subtotal: Decimal, config: PricingConfig | None = None) -> Decimal:
    config = config or PricingConfig()
    return money(money(subtotal) * config.tax_rate)


def shipping_fee(subtotal: Decimal, method: ShippingMethod, config: PricingConfig | None = None) -> Decimal:
    config = config or PricingConfig()
    if money(subtotal) > config.free_shipping_threshold:
        return ZERO
    return money(config.shipping_fees[ShippingMethod(method)])


def calculate_order_totals(
    lines: Iterable[Tuple[Decimal, int]],
    shipping_method: ShippingMethod = ShippingMethod.STANDARD,
    config: PricingConfig | None = None,
    discount: Decimal = ZERO,
) -> OrderTotals:
    """`lines` are trusted (unit_price, quantity) pairs, already snapshotted."""
    config = config or PricingConfig()

    subtotal = calculate_subtotal(lines)
    tax = estimate_tax(subtotal, config)
    shipping = shipping_fee(subtotal, shipping_method, config)
    discount = money(discount)
    total = money(subtotal + tax + shipping - discount)

    return OrderTotals(subtotal, tax, shipping, discount, total)
