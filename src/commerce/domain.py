"""Commerce bounded context — multi-vendor checkout and the order event pipeline.

Handles order placement split per vendor store, atomic stock reservation,
abandoned-cart capture and recovery, the outbox-style event log with its
retry sweep, and escrow holding tied to the order lifecycle.
"""

import structlog
from protean.domain import Domain

commerce = Domain(name="commerce")

logger = structlog.get_logger(__name__)
