"""OrderAttribution aggregate — which campaign brought the order in."""

from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.shared.clock import utc_now


@commerce.aggregate
class OrderAttribution:
    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    session_id = String(max_length=100)
    utm_source = String(max_length=255)
    utm_medium = String(max_length=255)
    utm_campaign = String(max_length=255)
    referrer = String(max_length=2048)
    created_at = DateTime()


@commerce.command(part_of="OrderAttribution")
class RecordOrderAttribution:
    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    session_id = String(max_length=100)
    utm_source = String(max_length=255)
    utm_medium = String(max_length=255)
    utm_campaign = String(max_length=255)
    referrer = String(max_length=2048)


@commerce.command_handler(part_of=OrderAttribution)
class RecordOrderAttributionHandler:
    @handle(RecordOrderAttribution)
    def record_attribution(self, command):
        attribution = OrderAttribution(
            order_id=command.order_id,
            store_id=command.store_id,
            session_id=command.session_id,
            utm_source=command.utm_source,
            utm_medium=command.utm_medium,
            utm_campaign=command.utm_campaign,
            referrer=command.referrer,
            created_at=utc_now(),
        )
        current_domain.repository_for(OrderAttribution).add(attribution)
        return str(attribution.id)
