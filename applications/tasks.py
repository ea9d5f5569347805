"""
Celery tasks for background processing.

Tasks for dead-letter ingestion, batch retry and the expiry sweep.
"""
import logging
from dataclasses import asdict
from typing import List

from LicenseWorkflowService.celery import app

from applications.application.services.expiry_sweep import expire_due_applications
from applications.domain.messages import DeadLetterRecord
from applications.infrastructure.container import (
    build_application_store,
    build_dlq_handler,
    build_failure_retry_engine,
)

logger = logging.getLogger(__name__)


@app.task
def process_dead_letter_batch(records: List[dict]) -> List[dict]:
    """
    Ingest a batch of dead-lettered notifications.

    Args:
        records: DeadLetterRecord payloads

    Returns:
        One outcome dict per record
    """
    handler = build_dlq_handler()
    outcomes = handler.handle_batch(DeadLetterRecord.from_dict(record) for record in records)
    return [asdict(outcome) for outcome in outcomes]


@app.task
def batch_retry_failed_notifications(
    owner_id: str,
    max_applications: int = None,
    reason: str = "Batch retry requested",
    force: bool = False,
) -> dict:
    """
    Retry an owner's failed notifications.

    Args:
        owner_id: Owner id
        max_applications: Maximum number of applications to retry
        reason: Why the retry was requested
        force: Include applications past the retry limit

    Returns:
        Batch result dict
    """
    engine = build_failure_retry_engine()
    result = engine.batch_retry(
        owner_id, limit=max_applications, reason=reason, force=force
    )
    return asdict(result)


@app.task
def expire_applications() -> dict:
    """
    Periodic task: expire Active applications past their expiry date.

    Returns:
        Sweep result dict
    """
    result = expire_due_applications(build_application_store())
    logger.info(
        "Expiry sweep completed: %s checked, %s expired, %s errors",
        result.checked,
        result.expired,
        result.errors,
    )
    return asdict(result)
