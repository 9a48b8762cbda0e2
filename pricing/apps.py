"""Django app configuration for the Pricing app."""

from django.apps import AppConfig


class PricingConfig(AppConfig):
    """AppConfig for slab, flash sale, coupon and MOQ pricing."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "pricing"
