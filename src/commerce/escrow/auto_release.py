"""Automatic escrow release — pays stores once the hold period has elapsed.

Triggered periodically by the worker or the maintenance API endpoint.
Buyers who never confirm receipt do not block the store's payout forever.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.escrow.escrow import EscrowRecord, EscrowStatus
from commerce.shared.clock import as_naive_utc, as_utc, utc_now
from commerce.shared.queries import each_row

logger = structlog.get_logger(__name__)


@commerce.command(part_of="EscrowRecord")
class ReleaseDueEscrows:
    """Release every held escrow whose release date has passed."""

    as_of = DateTime()  # Optional: defaults to now


@commerce.command_handler(part_of=EscrowRecord)
class ReleaseDueEscrowsHandler:
    @handle(ReleaseDueEscrows)
    def release_due_escrows(self, command):
        as_of = command.as_of or utc_now()
        logger.info("Checking for escrows due for release", as_of=as_naive_utc(as_of).isoformat())

        query = (
            current_domain.repository_for(EscrowRecord)
            ._dao.query.filter(status=EscrowStatus.HELD.value, release_at__lte=as_utc(as_of))
            .order_by("release_at")
        )
        # Paging must finish before any release shrinks the held set
        due = list(each_row(query))

        if not due:
            logger.info("No escrows due for release")
            return 0

        from commerce.escrow.management import ReleaseEscrow

        released = 0
        for escrow in due:
            try:
                current_domain.process(
                    ReleaseEscrow(order_id=str(escrow.order_id), reason="Hold period elapsed"),
                    asynchronous=False,
                )
                released += 1
                logger.info(
                    "Released escrow automatically",
                    escrow_id=str(escrow.id),
                    order_id=str(escrow.order_id),
                    net_amount=escrow.net_amount,
                )
            except ValidationError as exc:
                logger.warning("Failed to release escrow", escrow_id=str(escrow.id), error=str(exc))

        logger.info("Escrow auto-release complete", released_count=released)
        return released
