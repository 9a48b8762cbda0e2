from django.core.management.base import BaseCommand
from django.utils import timezone
from orders.models import IdempotencyKey


class Command(BaseCommand):
    help = "Delete idempotency key records whose expires_at has passed"

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="Report the count without deleting")

    def handle(self, *args, **options):
        qs = IdempotencyKey.objects.filter(expires_at__lt=timezone.now())
        count = qs.count()
        if options["dry_run"]:
            self.stdout.write(f"{count} expired idempotency keys would be deleted.")
            return
        qs.delete()
        self.stdout.write(self.style.SUCCESS(f"Deleted {count} expired idempotency keys."))
