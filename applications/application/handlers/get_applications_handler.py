"""
Application listing handler.
"""
from applications.application.dto.application_dto import ApplicationListDTO
from applications.application.queries.get_applications import GetApplicationsQuery
from applications.application.services.application_store import ApplicationStore
from applications.domain.status import TERMINAL_STATUSES
from core.domain.value_objects import ApplicationStatus

_GROUPS = {
    ApplicationStatus.PENDING: "pending",
    ApplicationStatus.AWAITING_NOTIFICATION: "awaiting_notification",
    ApplicationStatus.FAILED_NOTIFICATION: "failed_notification",
    ApplicationStatus.ACTIVE: "active",
}


class GetApplicationsHandler:
    """Handler for GetApplicationsQuery."""

    def __init__(self, store: ApplicationStore):
        """Initialize handler with store."""
        self.store = store

    def handle(self, query: GetApplicationsQuery) -> ApplicationListDTO:
        """
        Handle get applications query.

        Applications in Approve are only there for the length of an approval
        and are counted in the total but not grouped.

        Returns:
            ApplicationListDTO, each group newest first
        """
        applications = self.store.list_for_owner(query.owner_id)
        result = ApplicationListDTO(total=len(applications))
        for application in applications:
            if application.status in TERMINAL_STATUSES:
                result.history.append(application)
            elif application.status in _GROUPS:
                getattr(result, _GROUPS[application.status]).append(application)
        return result
