"""
Expiry sweep.

Marks Active applications whose license expiry date has passed as Expired.
"""
import logging
from datetime import datetime
from typing import Optional

from applications.application.dto.application_dto import ExpirySweepResultDTO
from applications.application.services.application_store import ApplicationStore

logger = logging.getLogger(__name__)


def expire_due_applications(
    store: ApplicationStore,
    now: Optional[datetime] = None,
    dry_run: bool = False,
) -> ExpirySweepResultDTO:
    """
    Expire every Active application past its expiry date.

    Each application is expired on its own; one failure is logged and
    counted without stopping the sweep.

    Args:
        store: Application store
        now: Reference time (defaults to the store clock)
        dry_run: Only report what would be expired

    Returns:
        ExpirySweepResultDTO
    """
    due = store.find_due_for_expiry(now)
    result = ExpirySweepResultDTO(checked=len(due))

    for application in due:
        if dry_run:
            result.record_keys.append(application.record_key)
            continue
        try:
            store.expire(application.owner_id, application.record_key)
            result.expired += 1
            result.record_keys.append(application.record_key)
            logger.info("Marked application %s as expired", application.record_key)
        except Exception as e:  # pylint: disable=broad-exception-caught
            result.errors += 1
            logger.error(
                "Error marking application %s as expired: %s",
                application.record_key,
                e,
                exc_info=True,
            )
    return result
