"""Cart app models.

A cart belongs either to an authenticated user or to a guest session.
Cart rows hold only variants and quantities; prices are resolved fresh by
the pricing engine every time the cart is read.
"""

from common.choices import CartStatus
from django.conf import settings
from django.db import models
from pricing.values import MAX_LINE_QUANTITY


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Cart(TimeStampedModel):
    """Shopping cart bound to a user or a guest `session_id`."""

    STATUS_ACTIVE = CartStatus.ACTIVE
    STATUS_ORDERED = CartStatus.ORDERED
    STATUS_ABANDONED = CartStatus.ABANDONED
    STATUS_CHOICES = CartStatus.choices

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="carts",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
    )
    session_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    # Canonical code of the coupon the shopper applied; re-evaluated on every read
    coupon_code = models.CharField(max_length=64, blank=True, default="")

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.CheckConstraint(
                name="cart_has_owner",
                condition=models.Q(user__isnull=False) | models.Q(session_id__isnull=False),
            ),
            models.UniqueConstraint(
                fields=["user"],
                condition=models.Q(status=CartStatus.ACTIVE, user__isnull=False),
                name="one_active_cart_per_user",
            ),
            models.UniqueConstraint(
                fields=["session_id"],
                condition=models.Q(status=CartStatus.ACTIVE, user__isnull=True),
                name="one_active_cart_per_session",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "status"], name="cart_user_status_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        owner = f"user={self.user_id}" if self.user_id else f"session={self.session_id}"
        return f"Cart#{self.id} ({owner})"

    @property
    def is_guest(self) -> bool:
        return self.user_id is None


class CartItem(TimeStampedModel):
    """Line item in a shopping cart for a product variant."""

    cart = models.ForeignKey(Cart, related_name="items", on_delete=models.CASCADE)
    variant = models.ForeignKey("catalog.ProductVariant", related_name="cart_items", on_delete=models.CASCADE)
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "variant"], name="unique_variant_per_cart"),
            models.CheckConstraint(
                name="quantity_in_range",
                condition=models.Q(quantity__gte=1, quantity__lte=MAX_LINE_QUANTITY),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CartItem#{self.id} cart={self.cart_id} variant={self.variant_id} qty={self.quantity}"
