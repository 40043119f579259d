from django.core.management.base import BaseCommand
from django.utils import timezone
from inventory.models import ReceiptIdempotencyKey


class Command(BaseCommand):
    help = "Delete expired stock receipt idempotency keys based on expires_at"

    def handle(self, *args, **options):
        now = timezone.now()
        qs = ReceiptIdempotencyKey.objects.filter(expires_at__lt=now)
        count = qs.count()
        qs.delete()
        self.stdout.write(self.style.SUCCESS(f"Deleted {count} expired receipt keys."))
