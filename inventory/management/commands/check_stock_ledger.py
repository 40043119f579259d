from django.core.management.base import BaseCommand, CommandError
from inventory.errors import ReconciliationViolation
from inventory.selectors import audit_ledger


class Command(BaseCommand):
    help = "Verify that every product's quantity on hand equals the sum of its stock movements."

    def handle(self, *args, **options):
        try:
            checked = audit_ledger()
        except ReconciliationViolation as exc:
            for mismatch in exc.mismatches:
                self.stderr.write(
                    f"{mismatch['sku']}: on hand {mismatch['quantity_on_hand']}, ledger {mismatch['ledger_total']}"
                )
            raise CommandError(f"Stock ledger does not reconcile for {len(exc.mismatches)} product(s).")
        self.stdout.write(self.style.SUCCESS(f"Stock ledger reconciled for {checked} product(s)."))
