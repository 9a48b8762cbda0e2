from datetime import timedelta

from cart.models import Cart
from cart.services import abandon_cart
from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone


class Command(BaseCommand):
    help = "Abandon active carts that have not changed within CART_ABANDON_TTL_MINUTES"

    def add_arguments(self, parser):
        parser.add_argument("--ttl-minutes", type=int, default=None, help="Override the configured TTL")

    def handle(self, *args, **options):
        ttl_minutes = options["ttl_minutes"] or getattr(settings, "CART_ABANDON_TTL_MINUTES", 120)
        cutoff = timezone.now() - timedelta(minutes=int(ttl_minutes))
        qs = Cart.objects.filter(status=Cart.STATUS_ACTIVE, updated_at__lt=cutoff)
        count = 0
        for cart in qs.iterator():
            abandon_cart(cart=cart)
            count += 1
        self.stdout.write(self.style.SUCCESS(f"Abandoned {count} stale carts."))
