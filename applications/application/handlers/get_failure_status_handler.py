"""
Failure status handler.

Handler for GetFailureStatusQuery.
"""
import logging
from typing import Union

from applications.application.dto.application_dto import (
    FailureReportDTO,
    FailureStatisticsDTO,
)
from applications.application.queries.get_failure_status import (
    ADMIN_ROLE,
    GetFailureStatusQuery,
)
from applications.application.services.failure_retry_engine import FailureRetryEngine
from core.domain.exceptions import AdminPrivilegesRequiredError

logger = logging.getLogger(__name__)


class GetFailureStatusHandler:
    """Handler for GetFailureStatusQuery."""

    def __init__(self, engine: FailureRetryEngine):
        """Initialize handler with retry engine."""
        self.engine = engine

    def handle(
        self, query: GetFailureStatusQuery
    ) -> Union[FailureStatisticsDTO, FailureReportDTO]:
        """
        Handle get failure status query.

        Returns statistics by default, the owner's detailed report when
        ``include_details`` is set and the global report for admins when
        ``include_all`` is set.

        Raises:
            AdminPrivilegesRequiredError: If a non-admin asks for all owners
        """
        if query.include_all:
            if query.role != ADMIN_ROLE:
                raise AdminPrivilegesRequiredError(
                    "Admin privileges required to view all users data"
                )
            report = self.engine.generate_failure_report()
            logger.info(
                "Generated admin failure report",
                extra={"total_failures": report.summary.total_failures},
            )
            return report

        if query.include_details:
            return self.engine.generate_failure_report(query.owner_id)

        return self.engine.compute_failure_statistics(query.owner_id)
