from django.core.management.base import BaseCommand, CommandError

from ....account.models import Store
from ...reconciliation import (
    get_orders_missing_stock_deduction,
    get_stock_discrepancies,
    get_unmapped_line_items,
)


class Command(BaseCommand):
    help = "Report stock counters that disagree with the inventory ledger"

    def add_arguments(self, parser):
        parser.add_argument(
            "--store",
            type=int,
            help="Only check the store with this id (default: all active stores)",
        )
        parser.add_argument(
            "--fail-on-discrepancy",
            action="store_true",
            help="Exit with an error if any discrepancy is found",
        )

    def handle(self, *args, **options):
        stores = Store.objects.filter(is_active=True).order_by("pk")
        if options["store"] is not None:
            stores = Store.objects.filter(pk=options["store"])
            if not stores.exists():
                raise CommandError(f"Store {options['store']} does not exist")

        total = 0
        for store in stores:
            self.stdout.write(f"Store {store.pk} ({store.name})")

            discrepancies = get_stock_discrepancies(store)
            total += len(discrepancies)
            for discrepancy in discrepancies:
                self.stdout.write(
                    self.style.WARNING(
                        f"  {discrepancy.name}: stock {discrepancy.recorded_stock}, "
                        f"ledger {discrepancy.calculated_stock} "
                        f"(diff {discrepancy.diff:+d})"
                    )
                )

            unmapped = get_unmapped_line_items(store)
            if unmapped:
                self.stdout.write(
                    self.style.WARNING(f"  {len(unmapped)} unmapped line items")
                )

            for order in get_orders_missing_stock_deduction(store):
                self.stdout.write(
                    self.style.WARNING(
                        f"  Order {order.order_number} ({order.sleeves_status}) "
                        "has line items without stock deduction"
                    )
                )

        if total == 0:
            self.stdout.write(self.style.SUCCESS("✓ Stock matches the ledger"))
        elif options["fail_on_discrepancy"]:
            raise CommandError(f"Found {total} stock discrepancies")
        else:
            self.stdout.write(self.style.WARNING(f"Found {total} stock discrepancies"))
