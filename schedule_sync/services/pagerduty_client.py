# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: PagerDuty client — the remote schedule gateway.
Maps HTTP failures onto the error taxonomy; retrying is left to the callers.
"""

import time
from typing import Any, Optional

import httpx

from schedule_sync.core.config import settings
from schedule_sync.core.errors import NotFoundError, RemoteError, TransientRemoteError
from schedule_sync.core.logging import get_logger
from schedule_sync.metrics.prometheus import REMOTE_CALLS, REMOTE_LATENCY
from schedule_sync.models.pagerduty import EscalationPolicy, Incident, PDSchedule

logger = get_logger(__name__)

ACCEPT_HEADER = "application/vnd.pagerduty+json;version=2"


def _error_details(resp: httpx.Response) -> tuple[str, list[str]]:
    """Extract (message, errors) from a PagerDuty error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200], []
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return resp.text[:200], []
    errors = error.get("errors") or []
    return str(error.get("message", "")), [str(e) for e in errors]


class PagerDutyClient:
    """Synchronous REST client for schedules, escalation policies and incidents."""

    def __init__(
        self,
        base_url: str = settings.PAGERDUTY_API_URL,
        token: str = settings.PAGERDUTY_TOKEN,
        timeout: float = settings.PAGERDUTY_TIMEOUT,
        page_size: int = settings.INCIDENT_PAGE_SIZE,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._page_size = page_size
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": ACCEPT_HEADER,
                "Authorization": f"Token token={token}",
                "Content-Type": "application/json",
            },
        )

    def close(self) -> None:
        self._client.close()

    # ── Transport ──

    def _request(
        self,
        method: str,
        path: str,
        action: str,
        resource_id: Optional[str] = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        start = time.monotonic()
        try:
            resp = self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            REMOTE_CALLS.labels(operation=action, outcome="network_error").inc()
            raise TransientRemoteError(action, resource_id, message=str(exc)) from exc
        finally:
            REMOTE_LATENCY.labels(operation=action).observe(time.monotonic() - start)

        if resp.is_success:
            REMOTE_CALLS.labels(operation=action, outcome="success").inc()
            if resp.status_code == 204 or not resp.content:
                return {}
            return resp.json()

        REMOTE_CALLS.labels(operation=action, outcome=str(resp.status_code)).inc()
        message, errors = _error_details(resp)
        logger.warning(
            "PagerDuty returned %s for %s %s: %s", resp.status_code, method, path, message
        )
        if resp.status_code == 404:
            error_cls = NotFoundError
        elif resp.status_code == 429 or resp.status_code >= 500:
            error_cls = TransientRemoteError
        else:
            error_cls = RemoteError
        raise error_cls(
            action,
            resource_id,
            status_code=resp.status_code,
            message=message,
            errors=errors,
        )

    # ── Schedules ──

    def create_schedule(self, schedule: PDSchedule, overflow: bool = False) -> PDSchedule:
        body = self._request(
            "POST",
            "/schedules",
            "create schedule",
            schedule.name,
            params={"overflow": str(overflow).lower()},
            json={"schedule": schedule.to_payload()},
        )
        return PDSchedule.model_validate(body["schedule"])

    def get_schedule(self, schedule_id: str) -> PDSchedule:
        body = self._request("GET", f"/schedules/{schedule_id}", "get schedule", schedule_id)
        return PDSchedule.model_validate(body["schedule"])

    def update_schedule(
        self, schedule_id: str, schedule: PDSchedule, overflow: bool = False
    ) -> PDSchedule:
        body = self._request(
            "PUT",
            f"/schedules/{schedule_id}",
            "update schedule",
            schedule_id,
            params={"overflow": str(overflow).lower()},
            json={"schedule": schedule.to_payload()},
        )
        return PDSchedule.model_validate(body["schedule"])

    def delete_schedule(self, schedule_id: str) -> None:
        self._request("DELETE", f"/schedules/{schedule_id}", "delete schedule", schedule_id)

    # ── Escalation policies ──

    def get_escalation_policy(self, policy_id: str) -> EscalationPolicy:
        body = self._request(
            "GET", f"/escalation_policies/{policy_id}", "get escalation policy", policy_id
        )
        return EscalationPolicy.model_validate(body["escalation_policy"])

    def update_escalation_policy(
        self, policy_id: str, policy: EscalationPolicy
    ) -> EscalationPolicy:
        body = self._request(
            "PUT",
            f"/escalation_policies/{policy_id}",
            "update escalation policy",
            policy_id,
            json={"escalation_policy": policy.to_payload()},
        )
        return EscalationPolicy.model_validate(body["escalation_policy"])

    # ── Incidents ──

    def list_open_incidents(
        self,
        team_ids: list[str],
        statuses: tuple[str, ...] = ("triggered", "acknowledged"),
        date_range: str = "all",
    ) -> list[Incident]:
        """List every incident matching the filters, following pagination."""
        incidents: list[Incident] = []
        offset = 0
        while True:
            params: list[tuple[str, Any]] = [
                ("date_range", date_range),
                ("limit", self._page_size),
                ("offset", offset),
            ]
            params += [("statuses[]", s) for s in statuses]
            params += [("team_ids[]", t) for t in team_ids]
            body = self._request("GET", "/incidents", "list incidents", params=params)
            page = body.get("incidents", [])
            incidents.extend(Incident.model_validate(i) for i in page)
            if not body.get("more") or not page:
                return incidents
            offset += len(page)
