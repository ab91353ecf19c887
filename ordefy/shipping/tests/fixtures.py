from decimal import Decimal

import pytest

from ..models import Carrier, CarrierZone


@pytest.fixture
def carrier(store):
    """Courier charging 20000 in Asunción, 30000 elsewhere, 50% for failures."""
    carrier = Carrier.objects.create(
        store=store, name="Moto Express", failed_attempt_fee_percent=Decimal(50)
    )
    CarrierZone.objects.create(
        carrier=carrier, zone_name="Asunción", rate=Decimal("20000.00")
    )
    CarrierZone.objects.create(
        carrier=carrier, zone_name="Interior", rate=Decimal("30000.00")
    )
    return carrier
