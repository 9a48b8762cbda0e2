"""Catalog app models.

Holds the catalog entities the pricing engine needs to know about:
categories and brands (coupon targeting), products and their variants
(base prices and minimum order quantity overrides).
"""

from common.choices import ActiveInactive, DraftPublished
from django.core.validators import MinValueValidator
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Category(TimeStampedModel):
    """Hierarchical product categorization."""

    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140, unique=True)
    description = models.TextField(blank=True)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        related_name="children",
        on_delete=models.SET_NULL,
    )
    is_active = models.BooleanField(default=True, db_index=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class Brand(TimeStampedModel):
    """Manufacturer or label a product is sold under."""

    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140, unique=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class Product(TimeStampedModel):
    """Core product entity."""

    STATUS_DRAFT = DraftPublished.DRAFT
    STATUS_PUBLISHED = DraftPublished.PUBLISHED
    STATUS_CHOICES = DraftPublished.choices

    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    categories = models.ManyToManyField(Category, related_name="products", blank=True)
    brand = models.ForeignKey(Brand, related_name="products", null=True, blank=True, on_delete=models.SET_NULL)
    # Applies to every variant unless the variant sets its own
    min_order_quantity = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
        help_text="Minimum units per cart line. Leave empty to use the global setting.",
    )

    class Meta:
        ordering = ["title"]
        constraints = [
            models.CheckConstraint(
                name="product_moq_positive",
                condition=models.Q(min_order_quantity__gte=1) | models.Q(min_order_quantity__isnull=True),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.title


class ProductVariant(TimeStampedModel):
    """Variant SKU under a product (e.g., size/color)."""

    STATUS_ACTIVE = ActiveInactive.ACTIVE
    STATUS_INACTIVE = ActiveInactive.INACTIVE
    STATUS_CHOICES = ActiveInactive.choices

    product = models.ForeignKey(Product, related_name="variants", on_delete=models.CASCADE)
    sku = models.CharField(max_length=64, unique=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    min_order_quantity = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
        help_text="Overrides the product and global minimum for this variant.",
    )

    class Meta:
        ordering = ["sku"]
        constraints = [
            models.CheckConstraint(
                name="variant_price_non_negative",
                condition=models.Q(price__gte=0) | models.Q(price__isnull=True),
            ),
            models.CheckConstraint(
                name="variant_moq_positive",
                condition=models.Q(min_order_quantity__gte=1) | models.Q(min_order_quantity__isnull=True),
            ),
        ]
        indexes = [
            models.Index(fields=["product", "status"], name="variant_product_status_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.product.title} [{self.sku}]"

    @property
    def is_purchasable(self) -> bool:
        return self.status == self.STATUS_ACTIVE and self.product.status == Product.STATUS_PUBLISHED
