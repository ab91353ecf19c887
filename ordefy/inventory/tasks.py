import logging

from celery.utils.log import get_task_logger

from ..account.models import Store
from ..celeryconf import app
from .reconciliation import get_orders_missing_stock_deduction, get_stock_discrepancies

logger = logging.getLogger(__name__)
task_logger = get_task_logger(f"{__name__}.celery")


@app.task
def check_stock_discrepancies_task(store_ids: list[int] | None = None):
    """Log every stock counter that disagrees with the ledger.

    Meant to run nightly from the beat schedule. Returns the number of
    discrepancies found per store id.
    """
    stores = Store.objects.filter(is_active=True).order_by("pk")
    if store_ids is not None:
        stores = stores.filter(pk__in=store_ids)

    summary = {}
    for store in stores:
        discrepancies = get_stock_discrepancies(store)
        for discrepancy in discrepancies:
            task_logger.warning(
                "Store %s: %s has stock %s, ledger expects %s (diff %s)",
                store.pk,
                discrepancy.name,
                discrepancy.recorded_stock,
                discrepancy.calculated_stock,
                discrepancy.diff,
            )
        missing = get_orders_missing_stock_deduction(store).count()
        if missing:
            task_logger.warning(
                "Store %s: %s shipped orders have line items without deduction",
                store.pk,
                missing,
            )
        summary[store.pk] = len(discrepancies)

    task_logger.info("Checked stock of %s stores", len(summary))
    return summary
