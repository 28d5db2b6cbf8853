# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Error taxonomy for schedule synchronization.
Controllers translate these into HTTP status codes; services never raise HTTPException.
"""

from typing import Optional


class ScheduleSyncError(Exception):
    """Base class for every error raised by this service."""


class ScheduleValidationError(ScheduleSyncError, ValueError):
    """Configuration or remote data that fails validation. Never retried."""


class InvalidTimestamp(ScheduleValidationError):
    """A timestamp could not be parsed as RFC 3339."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"{value!r} is not a valid RFC 3339 timestamp")


class RemoteError(ScheduleSyncError):
    """A call to the remote scheduling service failed."""

    def __init__(
        self,
        action: str,
        resource_id: Optional[str] = None,
        status_code: Optional[int] = None,
        message: str = "",
        errors: Optional[list[str]] = None,
    ) -> None:
        self.action = action
        self.resource_id = resource_id
        self.status_code = status_code
        self.message = message
        self.errors = list(errors or [])
        super().__init__(self._describe())

    def _describe(self) -> str:
        target = f" {self.resource_id!r}" if self.resource_id else ""
        status = f" (HTTP {self.status_code})" if self.status_code else ""
        detail = self.message
        if self.errors:
            detail = f"{detail}: {'; '.join(self.errors)}" if detail else "; ".join(self.errors)
        return f"failed to {self.action}{target}{status}: {detail or 'no detail'}"


class TransientRemoteError(RemoteError):
    """Network failure, throttling (429) or server error (5xx). Retried until the deadline."""


class NotFoundError(RemoteError):
    """The remote entity does not exist (HTTP 404)."""


class ConflictError(RemoteError):
    """Schedule deletion refused because escalation policies still reference it."""

    def __init__(self, original: RemoteError, compensation_error: Optional[Exception] = None) -> None:
        self.original = original
        self.compensation_error = compensation_error
        super().__init__(
            action=original.action,
            resource_id=original.resource_id,
            status_code=original.status_code,
            message=original.message,
            errors=original.errors,
        )

    def _describe(self) -> str:
        described = super()._describe()
        if self.compensation_error is not None:
            described = f"{described}; {self.compensation_error}"
        return described


class BlockedByOpenIncidents(ScheduleSyncError):
    """Schedule deletion refused locally: incidents on its teams are still open."""

    def __init__(self, schedule_id: str, incident_urls: list[str]) -> None:
        self.schedule_id = schedule_id
        self.incident_urls = list(incident_urls)
        links = "".join(f"\n{url}" for url in self.incident_urls)
        super().__init__(
            f"Before removing schedule {schedule_id!r} you must first resolve the following "
            f"incidents related to escalation policies using this schedule:{links}"
        )


class PolicyDetachError(ScheduleSyncError):
    """Removing a schedule from an escalation policy failed."""

    def __init__(self, schedule_id: str, policy_id: str, cause: Exception) -> None:
        self.schedule_id = schedule_id
        self.policy_id = policy_id
        super().__init__(
            f"{cause}; error while trying to dissociate schedule {schedule_id!r} "
            f"from escalation policy {policy_id!r}"
        )
