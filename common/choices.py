"""Shared enumerations and choices used across apps."""

from django.db import models


class ActiveInactive(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class DraftPublished(models.TextChoices):
    DRAFT = "draft", "Draft"
    PUBLISHED = "published", "Published"


class CartStatus(models.TextChoices):
    """Statuses for shopping carts."""

    ACTIVE = "active", "Active"
    ORDERED = "ordered", "Ordered"
    ABANDONED = "abandoned", "Abandoned"


class OrderStatus(models.TextChoices):
    """Lifecycle statuses for orders."""

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    CANCELLED = "cancelled", "Cancelled"


class DiscountType(models.TextChoices):
    """How a coupon's discount value is interpreted."""

    PERCENTAGE = "PERCENTAGE", "Percentage"
    FIXED_AMOUNT = "FIXED_AMOUNT", "Fixed amount"


class PriceSource(models.TextChoices):
    """Provenance of a resolved unit price."""

    DEFAULT = "DEFAULT", "Base price"
    SLAB = "SLAB", "Pricing slab"
    FLASH_SALE = "FLASH_SALE", "Flash sale"


class MOQSource(models.TextChoices):
    """Where an effective minimum order quantity came from."""

    VARIANT = "VARIANT", "Variant override"
    PRODUCT = "PRODUCT", "Product override"
    GLOBAL = "GLOBAL", "Global setting"
    DEFAULT = "DEFAULT", "Default"
