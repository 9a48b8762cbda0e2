"""Immutable value snapshots consumed and produced by the pricing core.

Everything here is a frozen dataclass. Constructors validate their input and
raise ``InvalidValueError`` for malformed data, so the pricing algorithms can
assume well-formed values and stay free of defensive checks.

Money is carried as ``Decimal`` and rounded to cents with ``ROUND_HALF_UP``.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import FrozenSet, Iterable, Optional, Tuple

from common.choices import DiscountType, MOQSource, PriceSource

from .exceptions import CouponError, InvalidValueError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

# Largest quantity a single cart or quote line may carry.
MAX_LINE_QUANTITY = 9999


def to_decimal(value, *, field_name: str) -> Decimal:
    """Coerce ``value`` to a finite Decimal or raise ``InvalidValueError``."""

    if isinstance(value, bool):
        raise InvalidValueError(f"{field_name} must be a number")
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidValueError(f"{field_name} must be a number")
    if not result.is_finite():
        raise InvalidValueError(f"{field_name} must be finite")
    return result


def to_money(value) -> Decimal:
    """Round to cents, half-up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def floor_money(value) -> Decimal:
    """Round down to cents."""
    return Decimal(value).quantize(CENT, rounding=ROUND_DOWN)


def normalize_code(code) -> str:
    """Canonical coupon code: stripped and upper-cased."""

    if not isinstance(code, str) or not code.strip():
        raise InvalidValueError("coupon code must be a non-empty string")
    return code.strip().upper()


def _whole_number(value, *, field_name: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidValueError(f"{field_name} must be a whole number")
    if value < minimum:
        raise InvalidValueError(f"{field_name} must be at least {minimum}")
    return value


def _non_negative(value, *, field_name: str) -> Decimal:
    result = to_decimal(value, field_name=field_name)
    if result < 0:
        raise InvalidValueError(f"{field_name} must not be negative")
    return result


def _id_set(values, *, field_name: str) -> FrozenSet:
    if values is None:
        return frozenset()
    if isinstance(values, (str, bytes)):
        raise InvalidValueError(f"{field_name} must be a collection of ids")
    return frozenset(values)


@dataclass(frozen=True)
class LineItem:
    """One product variant in a cart, as seen by the pricing core."""

    variant_id: int
    product_id: int
    quantity: int
    base_price: Decimal
    category_ids: FrozenSet[int] = frozenset()
    brand_id: Optional[int] = None
    moq_override: Optional[int] = None
    moq_override_source: str = MOQSource.PRODUCT

    def __post_init__(self):
        _whole_number(self.quantity, field_name="quantity", minimum=1)
        object.__setattr__(self, "base_price", _non_negative(self.base_price, field_name="base_price"))
        object.__setattr__(self, "category_ids", _id_set(self.category_ids, field_name="category_ids"))
        if self.moq_override is not None:
            _whole_number(self.moq_override, field_name="moq_override", minimum=1)
        if self.moq_override_source not in (MOQSource.VARIANT, MOQSource.PRODUCT):
            raise InvalidValueError("moq_override_source must be VARIANT or PRODUCT")

    def with_quantity(self, quantity: int) -> "LineItem":
        return replace(self, quantity=quantity)


@dataclass(frozen=True)
class PricingSlab:
    """Bulk price tier: ``unit_price`` applies from ``min_quantity`` units up."""

    min_quantity: int
    unit_price: Decimal
    id: Optional[int] = None

    def __post_init__(self):
        _whole_number(self.min_quantity, field_name="min_quantity", minimum=1)
        object.__setattr__(self, "unit_price", _non_negative(self.unit_price, field_name="unit_price"))


def validate_slabs(slabs: Iterable[PricingSlab]) -> Tuple[PricingSlab, ...]:
    """Return slabs ordered by ``min_quantity``; thresholds must be unique."""

    ordered = tuple(sorted(slabs, key=lambda slab: slab.min_quantity))
    seen = set()
    for slab in ordered:
        if slab.min_quantity in seen:
            raise InvalidValueError(f"duplicate slab threshold {slab.min_quantity}")
        seen.add(slab.min_quantity)
    return ordered


@dataclass(frozen=True)
class FlashSale:
    """Time-boxed percentage-off promotion over a set of products."""

    id: Optional[int]
    start_time: datetime
    end_time: datetime
    discount_percentage: Decimal
    product_ids: FrozenSet[int] = frozenset()
    max_quantity: Optional[int] = None
    sold_count: int = 0
    is_active: bool = True
    name: str = ""

    def __post_init__(self):
        if not self.start_time < self.end_time:
            raise InvalidValueError("flash sale start_time must be before end_time")
        pct = to_decimal(self.discount_percentage, field_name="discount_percentage")
        if pct < 0 or pct > HUNDRED:
            raise InvalidValueError("discount_percentage must be between 0 and 100")
        object.__setattr__(self, "discount_percentage", pct)
        object.__setattr__(self, "product_ids", _id_set(self.product_ids, field_name="product_ids"))
        if self.max_quantity is not None:
            _whole_number(self.max_quantity, field_name="max_quantity", minimum=0)
        _whole_number(self.sold_count, field_name="sold_count", minimum=0)

    @property
    def is_sold_out(self) -> bool:
        return self.max_quantity is not None and self.sold_count >= self.max_quantity

    def is_effective_for(self, product_id, now: datetime) -> bool:
        return (
            self.is_active
            and self.start_time <= now <= self.end_time
            and product_id in self.product_ids
            and not self.is_sold_out
        )


@dataclass(frozen=True)
class CouponScope:
    """Categories, products and brands a coupon is restricted to."""

    category_ids: FrozenSet[int] = frozenset()
    product_ids: FrozenSet[int] = frozenset()
    brand_ids: FrozenSet[int] = frozenset()

    def __post_init__(self):
        for name in ("category_ids", "product_ids", "brand_ids"):
            object.__setattr__(self, name, _id_set(getattr(self, name), field_name=name))

    @property
    def is_empty(self) -> bool:
        return not (self.category_ids or self.product_ids or self.brand_ids)

    def matches(self, line: LineItem) -> bool:
        """Union semantics: any one dimension matching is enough."""

        if self.is_empty:
            return True
        return bool(
            line.product_id in self.product_ids
            or (line.brand_id is not None and line.brand_id in self.brand_ids)
            or (line.category_ids & self.category_ids)
        )


@dataclass(frozen=True)
class Coupon:
    """Promotional code snapshot."""

    code: str
    discount_type: str
    discount_value: Decimal
    start_date: datetime
    end_date: Optional[datetime] = None
    min_order_amount: Optional[Decimal] = None
    max_uses: Optional[int] = None
    uses_so_far: int = 0
    is_active: bool = True
    scope: CouponScope = field(default_factory=CouponScope)
    id: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "code", normalize_code(self.code))
        try:
            object.__setattr__(self, "discount_type", DiscountType(self.discount_type))
        except ValueError:
            raise InvalidValueError(f"unknown discount type {self.discount_type!r}")
        value = _non_negative(self.discount_value, field_name="discount_value")
        if self.discount_type == DiscountType.PERCENTAGE and value > HUNDRED:
            raise InvalidValueError("percentage discount must not exceed 100")
        object.__setattr__(self, "discount_value", value)
        if self.min_order_amount is not None:
            object.__setattr__(
                self, "min_order_amount", _non_negative(self.min_order_amount, field_name="min_order_amount")
            )
        if self.end_date is not None and not self.end_date > self.start_date:
            raise InvalidValueError("coupon end_date must be after start_date")
        if self.max_uses is not None:
            _whole_number(self.max_uses, field_name="max_uses", minimum=0)
        _whole_number(self.uses_so_far, field_name="uses_so_far", minimum=0)

    @property
    def is_bounded(self) -> bool:
        return self.max_uses is not None


@dataclass(frozen=True)
class GlobalMOQSetting:
    is_active: bool = False
    min_quantity: int = 1

    def __post_init__(self):
        _whole_number(self.min_quantity, field_name="min_quantity", minimum=1)


@dataclass(frozen=True)
class ThresholdShippingRule:
    """Flat shipping charge, waived at or above ``free_threshold``.

    A zero charge means shipping is always free; a zero threshold means the
    charge always applies.
    """

    charge: Decimal = ZERO
    free_threshold: Decimal = ZERO

    def __post_init__(self):
        object.__setattr__(self, "charge", _non_negative(self.charge, field_name="charge"))
        object.__setattr__(self, "free_threshold", _non_negative(self.free_threshold, field_name="free_threshold"))

    def __call__(self, amount: Decimal) -> Decimal:
        if self.charge <= 0:
            return ZERO
        if self.free_threshold > 0 and amount >= self.free_threshold:
            return ZERO
        return to_money(self.charge)


FREE_SHIPPING = ThresholdShippingRule()


@dataclass(frozen=True)
class SettingsSnapshot:
    """Store-wide settings captured for a single pricing call."""

    global_moq: GlobalMOQSetting = field(default_factory=GlobalMOQSetting)
    hide_prices_for_guests: bool = False
    shipping_rule: ThresholdShippingRule = FREE_SHIPPING
    min_payable_amount: Decimal = Decimal("1.00")


@dataclass(frozen=True)
class ResolvedPrice:
    unit_price: Decimal
    price_source: str
    applied_slab: Optional[PricingSlab] = None
    flash_sale_id: Optional[int] = None


@dataclass(frozen=True)
class EffectiveMOQ:
    min_quantity: int
    source: str


@dataclass(frozen=True)
class PricedLineItem:
    """A line item with its resolved unit price and MOQ context."""

    line: LineItem
    unit_price: Decimal
    price_source: str
    line_subtotal: Decimal
    applied_slab: Optional[PricingSlab] = None
    flash_sale_id: Optional[int] = None
    min_quantity: int = 1
    moq_source: str = MOQSource.DEFAULT

    @property
    def variant_id(self):
        return self.line.variant_id

    @property
    def product_id(self):
        return self.line.product_id

    @property
    def quantity(self) -> int:
        return self.line.quantity

    @property
    def base_price(self) -> Decimal:
        return self.line.base_price

    @property
    def meets_minimum(self) -> bool:
        return self.line.quantity >= self.min_quantity

    @property
    def is_flash_sale(self) -> bool:
        return self.price_source == PriceSource.FLASH_SALE


@dataclass(frozen=True)
class CouponApplication:
    """Outcome of a coupon that applies to the cart."""

    code: str
    discount: Decimal
    raw_discount: Decimal
    applicable_subtotal: Decimal
    matched_item_count: int
    is_discount_capped: bool
    coupon_id: Optional[int] = None
    matched_variant_ids: FrozenSet[int] = frozenset()


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    total: Decimal
    redact_prices: bool = False
    below_minimum_payable: bool = False


@dataclass(frozen=True)
class PricedCart:
    """Fully priced cart: items, totals and the coupon outcome."""

    items: Tuple[PricedLineItem, ...]
    totals: CartTotals
    coupon: Optional[CouponApplication] = None
    coupon_error: Optional[CouponError] = field(default=None, compare=False)

    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @property
    def discount(self) -> Decimal:
        return self.totals.discount

    @property
    def shipping(self) -> Decimal:
        return self.totals.shipping

    @property
    def total(self) -> Decimal:
        return self.totals.total

    @property
    def redact_prices(self) -> bool:
        return self.totals.redact_prices

    @property
    def below_minimum_payable(self) -> bool:
        return self.totals.below_minimum_payable

    @property
    def moq_violations(self) -> Tuple[PricedLineItem, ...]:
        return tuple(item for item in self.items if not item.meets_minimum)

    @property
    def checkout_ready(self) -> bool:
        return bool(self.items) and not self.moq_violations and not self.totals.below_minimum_payable

    def item_for_variant(self, variant_id) -> Optional[PricedLineItem]:
        for item in self.items:
            if item.variant_id == variant_id:
                return item
        return None
