"""StoreNotification aggregate — the vendor's dashboard inbox.

New orders and audit trail entries (buyer confirmations, refunds) land
here. Notifications are created by event handlers; ``dedupe_key`` keeps a
retried handler from writing the same entry twice.
"""

import json
from enum import Enum

from protean.fields import DateTime, Identifier, String, Text

from commerce.domain import commerce
from commerce.shared.clock import utc_now


class StoreNotificationType(Enum):
    NEW_ORDER = "new_order"
    AUDIT = "audit"


@commerce.aggregate
class StoreNotification:
    store_id = Identifier(required=True)
    notification_type = String(choices=StoreNotificationType, required=True)
    title = String(required=True, max_length=255)
    body = Text()
    details = Text()  # JSON
    dedupe_key = String(max_length=255)
    read_at = DateTime()
    created_at = DateTime()

    @classmethod
    def create(cls, store_id, notification_type, title, body=None, details=None, dedupe_key=None):
        return cls(
            store_id=str(store_id),
            notification_type=notification_type,
            title=title,
            body=body,
            details=json.dumps(details or {}),
            dedupe_key=dedupe_key,
            created_at=utc_now(),
        )

    @property
    def details_data(self):
        return json.loads(self.details) if self.details else {}

