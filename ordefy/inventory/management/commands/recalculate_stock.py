from django.core.management.base import BaseCommand, CommandError

from ....account.models import Store
from ....product.models import Product
from ...reconciliation import recalculate_stock


class Command(BaseCommand):
    help = "Reset stock counters to the value the inventory ledger adds up to"

    def add_arguments(self, parser):
        parser.add_argument("store", type=int, help="Id of the store to repair")
        parser.add_argument(
            "--product",
            type=int,
            help="Only repair the product with this id",
        )
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

        product = None
        if options["product"] is not None:
            try:
                product = Product.objects.get(pk=options["product"], store=store)
            except Product.DoesNotExist:
                raise CommandError(
                    f"Product {options['product']} does not exist in store {store.pk}"
                ) from None

        if dry_run:
            self.stdout.write(
                self.style.WARNING("DRY RUN MODE - No stock will be changed")
            )

        discrepancies = recalculate_stock(store, product=product, dry_run=dry_run)
        if not discrepancies:
            self.stdout.write(self.style.SUCCESS("✓ No stock discrepancies found"))
            return

        verb = "Would reset" if dry_run else "Reset"
        for discrepancy in discrepancies:
            self.stdout.write(
                f"  {verb} {discrepancy.name}: {discrepancy.recorded_stock} -> "
                f"{discrepancy.calculated_stock}"
            )
        self.stdout.write(
            self.style.SUCCESS(f"{verb} {len(discrepancies)} stock counters")
        )
