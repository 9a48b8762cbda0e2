"""Pricing app models.

Persistent configuration behind the pricing engine: bulk pricing slabs,
flash sales, coupons and the store-wide singletons (global MOQ, guest price
visibility, shipping charge). Each model converts itself into the immutable
snapshot the engine consumes via ``to_value()``.
"""

from decimal import Decimal

from common.choices import DiscountType
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from . import values


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class SingletonModel(TimeStampedModel):
    """A settings table holding exactly one row (pk=1)."""

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):  # pragma: no cover
        # Settings rows are edited, never removed
        return (0, {})

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj


class PricingSlab(TimeStampedModel):
    """Bulk price tier for a product, optionally narrowed to one variant.

    Variant slabs, when a variant has any, replace the product-wide slabs for
    that variant rather than merging with them.
    """

    product = models.ForeignKey("catalog.Product", related_name="pricing_slabs", on_delete=models.CASCADE)
    variant = models.ForeignKey(
        "catalog.ProductVariant",
        related_name="pricing_slabs",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
    )
    min_quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])

    class Meta:
        ordering = ["product_id", "variant_id", "min_quantity"]
        constraints = [
            models.UniqueConstraint(
                fields=["variant", "min_quantity"],
                condition=models.Q(variant__isnull=False),
                name="unique_slab_threshold_per_variant",
            ),
            models.UniqueConstraint(
                fields=["product", "min_quantity"],
                condition=models.Q(variant__isnull=True),
                name="unique_slab_threshold_per_product",
            ),
            models.CheckConstraint(name="slab_min_quantity_positive", condition=models.Q(min_quantity__gte=1)),
            models.CheckConstraint(name="slab_price_non_negative", condition=models.Q(unit_price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        target = self.variant.sku if self.variant_id else self.product.title
        return f"{target}: {self.min_quantity}+ @ {self.unit_price}"

    def clean(self):
        if self.variant_id and self.product_id and self.variant.product_id != self.product_id:
            raise ValidationError({"variant": "Variant must belong to the selected product."})

    def to_value(self) -> values.PricingSlab:
        return values.PricingSlab(min_quantity=int(self.min_quantity), unit_price=self.unit_price, id=self.id)


class FlashSale(TimeStampedModel):
    """Time-boxed percentage-off promotion over selected products."""

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField(db_index=True)
    discount_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    max_quantity = models.PositiveIntegerField(null=True, blank=True, help_text="Leave empty for unlimited units.")
    sold_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    products = models.ManyToManyField("catalog.Product", related_name="flash_sales", blank=True)

    class Meta:
        ordering = ["start_time"]
        constraints = [
            models.CheckConstraint(name="flash_sale_window_valid", condition=models.Q(end_time__gt=models.F("start_time"))),
            models.CheckConstraint(
                name="flash_sale_percentage_range",
                condition=models.Q(discount_percentage__gte=0, discount_percentage__lte=100),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} (-{self.discount_percentage}%)"

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError({"end_time": "End time must be after start time."})

    def to_value(self) -> values.FlashSale:
        return values.FlashSale(
            id=self.id,
            name=self.name,
            start_time=self.start_time,
            end_time=self.end_time,
            discount_percentage=self.discount_percentage,
            product_ids=frozenset(p.id for p in self.products.all()),
            max_quantity=self.max_quantity,
            sold_count=int(self.sold_count),
            is_active=self.is_active,
        )


class Coupon(TimeStampedModel):
    """Promotional code, optionally scoped to categories, products or brands."""

    TYPE_PERCENTAGE = DiscountType.PERCENTAGE
    TYPE_FIXED_AMOUNT = DiscountType.FIXED_AMOUNT
    TYPE_CHOICES = DiscountType.choices

    code = models.CharField(max_length=64, unique=True)
    description = models.TextField(blank=True)
    discount_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    discount_value = models.DecimalField(
        max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0"))]
    )
    min_order_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    max_uses = models.PositiveIntegerField(null=True, blank=True, help_text="Leave empty for unlimited uses.")
    uses_so_far = models.PositiveIntegerField(default=0)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    categories = models.ManyToManyField("catalog.Category", related_name="coupons", blank=True)
    products = models.ManyToManyField("catalog.Product", related_name="coupons", blank=True)
    brands = models.ManyToManyField("catalog.Brand", related_name="coupons", blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(name="coupon_value_non_negative", condition=models.Q(discount_value__gte=0)),
            models.CheckConstraint(
                name="coupon_percentage_at_most_100",
                condition=~models.Q(discount_type=DiscountType.PERCENTAGE) | models.Q(discount_value__lte=100),
            ),
            models.CheckConstraint(
                name="coupon_window_valid",
                condition=models.Q(end_date__isnull=True) | models.Q(end_date__gt=models.F("start_date")),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.code

    def save(self, *args, **kwargs):
        self.code = values.normalize_code(self.code)
        super().save(*args, **kwargs)

    def clean(self):
        errors = {}
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value is not None:
            if self.discount_value > 100:
                errors["discount_value"] = "Percentage discount must be between 0 and 100."
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            errors["end_date"] = "End date must be after start date."
        if errors:
            raise ValidationError(errors)

    def to_value(self) -> values.Coupon:
        return values.Coupon(
            id=self.id,
            code=self.code,
            discount_type=self.discount_type,
            discount_value=self.discount_value,
            min_order_amount=self.min_order_amount,
            max_uses=self.max_uses,
            uses_so_far=int(self.uses_so_far),
            start_date=self.start_date,
            end_date=self.end_date,
            is_active=self.is_active,
            scope=values.CouponScope(
                category_ids=frozenset(c.id for c in self.categories.all()),
                product_ids=frozenset(p.id for p in self.products.all()),
                brand_ids=frozenset(b.id for b in self.brands.all()),
            ),
        )


class GlobalMOQSetting(SingletonModel):
    """Store-wide minimum order quantity, used when no override exists."""

    is_active = models.BooleanField(default=False)
    min_quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    class Meta:
        verbose_name = "global MOQ setting"

    def __str__(self) -> str:  # pragma: no cover
        return f"Global MOQ {self.min_quantity} ({'on' if self.is_active else 'off'})"

    def to_value(self) -> values.GlobalMOQSetting:
        return values.GlobalMOQSetting(is_active=self.is_active, min_quantity=int(self.min_quantity))


class PriceVisibilitySetting(SingletonModel):
    hide_prices_for_guests = models.BooleanField(default=False)

    class Meta:
        verbose_name = "price visibility setting"

    def __str__(self) -> str:  # pragma: no cover
        return "Hide prices for guests" if self.hide_prices_for_guests else "Prices visible to guests"


class ShippingSetting(SingletonModel):
    """Flat shipping charge with an optional free-shipping threshold."""

    shipping_charge = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    free_shipping_threshold = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        verbose_name = "shipping setting"

    def __str__(self) -> str:  # pragma: no cover
        return f"Shipping {self.shipping_charge} (free from {self.free_shipping_threshold})"

    def to_value(self) -> values.ThresholdShippingRule:
        return values.ThresholdShippingRule(
            charge=self.shipping_charge,
            free_threshold=self.free_shipping_threshold,
        )
