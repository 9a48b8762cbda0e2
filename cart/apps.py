"""Django app configuration for the Cart app."""

from django.apps import AppConfig


class CartConfig(AppConfig):
    """AppConfig for user and guest shopping carts."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "cart"
