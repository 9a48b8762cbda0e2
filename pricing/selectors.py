"""Selectors that turn database rows into pricing snapshots.

Everything returned here is an immutable value from ``pricing.values``; the
pricing core never sees a model instance.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from catalog.models import ProductVariant
from common.choices import MOQSource
from django.conf import settings as dj_settings

from . import values
from .models import Coupon, FlashSale, GlobalMOQSetting, PriceVisibilitySetting, PricingSlab, ShippingSetting


def variants_for_pricing(variant_ids: Iterable[int]) -> Dict[int, ProductVariant]:
    """Fetch variants with everything ``build_line_item`` touches."""

    qs = (
        ProductVariant.objects.filter(id__in=set(variant_ids))
        .select_related("product", "product__brand")
        .prefetch_related("product__categories")
    )
    return {variant.id: variant for variant in qs}


def build_line_item(variant: ProductVariant, quantity: int) -> values.LineItem:
    """Snapshot a variant as a line item.

    The MOQ override is the variant's own minimum when set, else the product's.
    """

    product = variant.product
    if variant.min_order_quantity is not None:
        moq_override, moq_source = int(variant.min_order_quantity), MOQSource.VARIANT
    elif product.min_order_quantity is not None:
        moq_override, moq_source = int(product.min_order_quantity), MOQSource.PRODUCT
    else:
        moq_override, moq_source = None, MOQSource.PRODUCT
    return values.LineItem(
        variant_id=variant.id,
        product_id=product.id,
        quantity=int(quantity),
        base_price=variant.price if variant.price is not None else Decimal("0.00"),
        category_ids=frozenset(category.id for category in product.categories.all()),
        brand_id=product.brand_id,
        moq_override=moq_override,
        moq_override_source=moq_source,
    )


def cart_line_items(cart) -> List[values.LineItem]:
    items = cart.items.select_related("variant", "variant__product").prefetch_related("variant__product__categories")
    return [build_line_item(item.variant, item.quantity) for item in items.order_by("id")]


def slabs_by_variant(lines: Iterable[values.LineItem]) -> Dict[int, Tuple[values.PricingSlab, ...]]:
    """Slabs applicable to each variant, ordered by threshold.

    A variant with slabs of its own ignores the product-wide slabs.
    """

    lines = list(lines)
    product_ids = {line.product_id for line in lines}
    if not product_ids:
        return {}
    product_slabs = defaultdict(list)
    variant_slabs = defaultdict(list)
    for slab in PricingSlab.objects.filter(product_id__in=product_ids):
        if slab.variant_id is None:
            product_slabs[slab.product_id].append(slab.to_value())
        else:
            variant_slabs[slab.variant_id].append(slab.to_value())

    result = {}
    for line in lines:
        own = variant_slabs.get(line.variant_id)
        result[line.variant_id] = values.validate_slabs(own if own else product_slabs.get(line.product_id, ()))
    return result


def slabs_for_variant(variant: ProductVariant) -> Tuple[values.PricingSlab, ...]:
    own = [slab.to_value() for slab in PricingSlab.objects.filter(variant=variant)]
    if own:
        return values.validate_slabs(own)
    shared = PricingSlab.objects.filter(product_id=variant.product_id, variant__isnull=True)
    return values.validate_slabs(slab.to_value() for slab in shared)


def flash_sale_by_product(product_ids: Iterable[int], now) -> Dict[int, Optional[values.FlashSale]]:
    """The effective flash sale per product at ``now``.

    When several sales cover one product, the highest discount wins.
    Sold-out sales are skipped.
    """

    product_ids = set(product_ids)
    if not product_ids:
        return {}
    candidates = (
        FlashSale.objects.filter(
            is_active=True,
            start_time__lte=now,
            end_time__gte=now,
            products__id__in=product_ids,
        )
        .prefetch_related("products")
        .distinct()
        .order_by("id")
    )
    best: Dict[int, values.FlashSale] = {}
    for sale in candidates:
        snapshot = sale.to_value()
        for product_id in snapshot.product_ids & product_ids:
            if not snapshot.is_effective_for(product_id, now):
                continue
            current = best.get(product_id)
            if current is None or snapshot.discount_percentage > current.discount_percentage:
                best[product_id] = snapshot
    return best


def find_coupon(code: str) -> Optional[values.Coupon]:
    """Coupon lookup by canonical (upper-cased) code."""

    coupon = Coupon.objects.prefetch_related("categories", "products", "brands").filter(code=code).first()
    return coupon.to_value() if coupon is not None else None


def get_settings_snapshot() -> values.SettingsSnapshot:
    return values.SettingsSnapshot(
        global_moq=GlobalMOQSetting.load().to_value(),
        hide_prices_for_guests=PriceVisibilitySetting.load().hide_prices_for_guests,
        shipping_rule=ShippingSetting.load().to_value(),
        min_payable_amount=Decimal(str(getattr(dj_settings, "MIN_PAYABLE_AMOUNT", "1.00"))),
    )
