"""
Reconciliation hazard reporting.

A reconciliation hazard is a Stripe call that succeeded while the local
write that should follow it failed (or could not be applied). Money has
moved, or is held, without the ledger knowing. These are logged at ERROR
with every identifier an operator needs to repair the row by hand, and
with reconciliation_hazard=True so log alerting can match on it.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def report_reconciliation_hazard(
    operation: str,
    *,
    payment_intent_id: str | None = None,
    checkout_session_id: str | None = None,
    mission_id=None,
    payment_id=None,
    error: BaseException | str | None = None,
) -> None:
    """
    Log a reconciliation hazard. Never raises.

    Args:
        operation: What succeeded at Stripe (e.g. "capture", "checkout")
        payment_intent_id: External transaction id, when known
        checkout_session_id: Checkout session id, when known
        mission_id: Mission the money belongs to
        payment_id: Local Payment id (may not exist yet)
        error: The local failure
    """
    logger.error(
        f"Reconciliation hazard: Stripe {operation} succeeded but the ledger was not updated",
        extra={
            "reconciliation_hazard": True,
            "operation": operation,
            "payment_intent_id": payment_intent_id,
            "checkout_session_id": checkout_session_id,
            "mission_id": str(mission_id) if mission_id else None,
            "payment_id": str(payment_id) if payment_id else None,
            "error": str(error) if error else None,
        },
        exc_info=error if isinstance(error, BaseException) else None,
    )
