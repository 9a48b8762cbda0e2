"""Unit price resolution for a single line item.

Precedence is fixed: an effective flash sale wins, then the best matching
pricing slab, then the base price. Flash sale and slab prices never stack.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from common.choices import MOQSource, PriceSource

from .values import (
    HUNDRED,
    EffectiveMOQ,
    FlashSale,
    LineItem,
    PricedLineItem,
    PricingSlab,
    ResolvedPrice,
    to_money,
)


def select_slab(slabs: Iterable[PricingSlab], quantity: int) -> Optional[PricingSlab]:
    """Return the slab with the greatest ``min_quantity`` not above ``quantity``."""

    best = None
    for slab in slabs:
        if slab.min_quantity <= quantity and (best is None or slab.min_quantity > best.min_quantity):
            best = slab
    return best


def flash_sale_price(base_price: Decimal, discount_percentage: Decimal) -> Decimal:
    return to_money(base_price * (1 - Decimal(discount_percentage) / HUNDRED))


def resolve_unit_price(
    line_item: LineItem,
    slabs: Iterable[PricingSlab],
    flash_sale: Optional[FlashSale],
    now: datetime,
) -> ResolvedPrice:
    """Pick the authoritative unit price for ``line_item`` at ``now``.

    The flash sale's ceiling (``sold_count`` against ``max_quantity``) is
    checked on every call; a sold-out sale falls through to slab pricing.
    """

    if flash_sale is not None and flash_sale.is_effective_for(line_item.product_id, now):
        return ResolvedPrice(
            unit_price=flash_sale_price(line_item.base_price, flash_sale.discount_percentage),
            price_source=PriceSource.FLASH_SALE,
            flash_sale_id=flash_sale.id,
        )

    slab = select_slab(slabs, line_item.quantity)
    if slab is not None:
        return ResolvedPrice(
            unit_price=to_money(slab.unit_price),
            price_source=PriceSource.SLAB,
            applied_slab=slab,
        )

    return ResolvedPrice(unit_price=to_money(line_item.base_price), price_source=PriceSource.DEFAULT)


def price_line_item(
    line_item: LineItem,
    slabs: Iterable[PricingSlab],
    flash_sale: Optional[FlashSale],
    now: datetime,
    moq: Optional[EffectiveMOQ] = None,
) -> PricedLineItem:
    resolved = resolve_unit_price(line_item, slabs, flash_sale, now)
    moq = moq or EffectiveMOQ(min_quantity=1, source=MOQSource.DEFAULT)
    return PricedLineItem(
        line=line_item,
        unit_price=resolved.unit_price,
        price_source=resolved.price_source,
        line_subtotal=to_money(resolved.unit_price * line_item.quantity),
        applied_slab=resolved.applied_slab,
        flash_sale_id=resolved.flash_sale_id,
        min_quantity=moq.min_quantity,
        moq_source=moq.source,
    )
