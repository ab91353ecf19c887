from django.core.management.base import BaseCommand, CommandError

from ...models import Store
from ...utils import repair_customer_stats


class Command(BaseCommand):
    help = "Recompute customer order totals from their orders"

    def add_arguments(self, parser):
        parser.add_argument("store", type=int, help="Id of the store to repair")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be changed without changing it",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        try:
            store = Store.objects.get(pk=options["store"])
        except Store.DoesNotExist:
            raise CommandError(f"Store {options['store']} does not exist") from None

        if dry_run:
            self.stdout.write(
                self.style.WARNING("DRY RUN MODE - No customers will be updated")
            )

        repairs = repair_customer_stats(store, dry_run=dry_run)
        if not repairs:
            self.stdout.write(self.style.SUCCESS("✓ Customer stats are up to date"))
            return

        for repair in repairs:
            self.stdout.write(
                f"  Customer {repair.customer_id}: orders "
                f"{repair.recorded_orders} -> {repair.calculated_orders}, spent "
                f"{repair.recorded_spent} -> {repair.calculated_spent}"
            )
        verb = "Would repair" if dry_run else "Repaired"
        self.stdout.write(self.style.SUCCESS(f"{verb} {len(repairs)} customers"))
