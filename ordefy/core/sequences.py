"""Daily reference codes such as PREP-18012026-001."""

import datetime
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .exceptions import ReferenceGenerationExhausted
from .models import ReferenceSequence

logger = logging.getLogger(__name__)


def format_reference_code(prefix: str, day: datetime.date, number: int) -> str:
    return f"{prefix}-{day:%d%m%Y}-{number:03d}"


@transaction.atomic
def generate_reference_code(store, prefix: str, day: datetime.date | None = None):
    """Issue the next code of the store's daily series for ``prefix``.

    Generation for the same (store, prefix, day) key is serialized on the
    sequence row, which stays locked until the caller's transaction ends, so
    the code and the record that uses it commit together.

    Raises:
        ReferenceGenerationExhausted: when the daily limit is already reached.

    """
    if day is None:
        day = timezone.localdate()

    sequence, _ = ReferenceSequence.objects.select_for_update().get_or_create(
        store=store, prefix=prefix, day=day
    )
    limit = settings.REFERENCE_CODE_DAILY_LIMIT
    if sequence.last_value >= limit:
        raise ReferenceGenerationExhausted(prefix, store.pk, day, limit)

    sequence.last_value += 1
    sequence.save(update_fields=["last_value"])

    code = format_reference_code(prefix, day, sequence.last_value)
    logger.debug("Issued reference code %s for store %s", code, store.pk)
    return code
