# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Shared fixtures: an in-memory PagerDuty and a fake clock that advances on sleep.
"""

import itertools
from datetime import datetime, timezone
from typing import Any

import pytest

from schedule_sync.core.errors import NotFoundError, RemoteError
from schedule_sync.core.retry import RetryPolicy
from schedule_sync.models.pagerduty import EscalationPolicy, Incident, PDSchedule
from schedule_sync.repositories.schedule_repository import ScheduleRepository
from schedule_sync.services.deletion_coordinator import (
    SCHEDULE_IN_USE_MESSAGE,
    DeletionCoordinator,
)
from schedule_sync.services.dependency_scanner import DependencyScanner
from schedule_sync.services.schedule_service import ScheduleService

NOW = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock whose sleep() just moves time forward."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakePagerDuty:
    """In-memory stand-in for the PagerDuty REST API (ScheduleGateway)."""

    def __init__(self) -> None:
        self.schedules: dict[str, dict[str, Any]] = {}
        self.policies: dict[str, dict[str, Any]] = {}
        self.incidents: list[dict[str, Any]] = []
        self.calls: list[tuple] = []
        self._failures: dict[str, list[Exception]] = {}
        self._ids = itertools.count(1)

    # ── Test helpers ──

    def fail_next(self, method: str, *errors: Exception) -> None:
        self._failures.setdefault(method, []).extend(errors)

    def calls_to(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, *args))
        queued = self._failures.get(method)
        if queued:
            raise queued.pop(0)

    def _assign_ids(self, layers: list[dict[str, Any]]) -> list[dict[str, Any]]:
        stored = []
        for layer in layers:
            layer = dict(layer)
            if not layer.get("id"):
                layer["id"] = f"PLAYER{next(self._ids)}"
            layer.setdefault("name", f"Layer {layer['id']}")
            layer["rendered_coverage_percentage"] = 50.0
            stored.append(layer)
        return stored

    def _referencing_policies(self, schedule_id: str) -> list[dict[str, str]]:
        return [
            {"id": pid, "type": "escalation_policy_reference"}
            for pid, policy in self.policies.items()
            if any(
                t["id"] == schedule_id and t["type"] in ("schedule_reference", "schedule")
                for rule in policy["escalation_rules"]
                for t in rule["targets"]
            )
        ]

    def add_schedule(self, schedule_id: str, layers: list[dict[str, Any]], teams=(), **fields) -> None:
        self.schedules[schedule_id] = {
            "id": schedule_id,
            "name": fields.get("name", "Existing"),
            "time_zone": fields.get("time_zone", "UTC"),
            "description": fields.get("description", "Managed by Terraform"),
            "schedule_layers": self._assign_ids(layers),
            "teams": [{"id": t, "type": "team_reference"} for t in teams],
            "final_schedule": {"name": "Final Schedule", "rendered_coverage_percentage": 87.5},
        }

    def add_policy(self, policy_id: str, rules: list[list[tuple[str, str]]]) -> None:
        self.policies[policy_id] = {
            "id": policy_id,
            "name": f"Policy {policy_id}",
            "escalation_rules": [
                {
                    "id": f"{policy_id}-R{i}",
                    "escalation_delay_in_minutes": 30,
                    "targets": [{"id": tid, "type": ttype} for ttype, tid in targets],
                }
                for i, targets in enumerate(rules)
            ],
        }

    def add_incident(self, incident_id: str, team_id: str, status: str = "triggered") -> None:
        self.incidents.append(
            {
                "id": incident_id,
                "status": status,
                "html_url": f"https://example.pagerduty.com/incidents/{incident_id}",
                "teams": [{"id": team_id, "type": "team_reference"}],
            }
        )

    # ── ScheduleGateway ──

    def create_schedule(self, schedule: PDSchedule, overflow: bool = False) -> PDSchedule:
        self._record("create_schedule", schedule, overflow)
        schedule_id = f"PSCHED{next(self._ids)}"
        payload = schedule.to_payload()
        self.schedules[schedule_id] = {
            **payload,
            "id": schedule_id,
            "schedule_layers": self._assign_ids(payload["schedule_layers"]),
            "final_schedule": {"name": "Final Schedule", "rendered_coverage_percentage": 100.0},
        }
        return self.get_schedule(schedule_id)

    def get_schedule(self, schedule_id: str) -> PDSchedule:
        self._record("get_schedule", schedule_id)
        if schedule_id not in self.schedules:
            raise NotFoundError("get schedule", schedule_id, status_code=404, message="Not Found")
        document = dict(self.schedules[schedule_id])
        document["escalation_policies"] = self._referencing_policies(schedule_id)
        return PDSchedule.model_validate(document)

    def update_schedule(
        self, schedule_id: str, schedule: PDSchedule, overflow: bool = False
    ) -> PDSchedule:
        self._record("update_schedule", schedule_id, schedule, overflow)
        if schedule_id not in self.schedules:
            raise NotFoundError("update schedule", schedule_id, status_code=404)
        payload = schedule.to_payload()
        existing = self.schedules[schedule_id]["schedule_layers"]
        known = {layer["id"] for layer in existing}
        sent = {layer["id"]: layer for layer in payload["schedule_layers"] if layer.get("id")}
        # layers left out of the document are kept as they were, never deleted
        layers = [sent.get(layer["id"], layer) for layer in existing]
        layers += [layer for layer in payload["schedule_layers"] if layer.get("id") not in known]
        self.schedules[schedule_id] = {
            **self.schedules[schedule_id],
            **payload,
            "schedule_layers": self._assign_ids(layers),
        }
        return self.get_schedule(schedule_id)

    def delete_schedule(self, schedule_id: str) -> None:
        self._record("delete_schedule", schedule_id)
        if schedule_id not in self.schedules:
            raise NotFoundError("delete schedule", schedule_id, status_code=404)
        if self._referencing_policies(schedule_id):
            raise RemoteError(
                "delete schedule",
                schedule_id,
                status_code=400,
                message="Invalid Input Provided",
                errors=[SCHEDULE_IN_USE_MESSAGE],
            )
        del self.schedules[schedule_id]

    def get_escalation_policy(self, policy_id: str) -> EscalationPolicy:
        self._record("get_escalation_policy", policy_id)
        if policy_id not in self.policies:
            raise NotFoundError("get escalation policy", policy_id, status_code=404)
        return EscalationPolicy.model_validate(self.policies[policy_id])

    def update_escalation_policy(
        self, policy_id: str, policy: EscalationPolicy
    ) -> EscalationPolicy:
        self._record("update_escalation_policy", policy_id, policy)
        if policy_id not in self.policies:
            raise NotFoundError("update escalation policy", policy_id, status_code=404)
        self.policies[policy_id] = {**policy.to_payload(), "id": policy_id}
        return EscalationPolicy.model_validate(self.policies[policy_id])

    def list_open_incidents(
        self,
        team_ids: list[str],
        statuses: tuple[str, ...] = ("triggered", "acknowledged"),
        date_range: str = "all",
    ) -> list[Incident]:
        self._record("list_open_incidents", list(team_ids), tuple(statuses), date_range)
        return [
            Incident.model_validate(i)
            for i in self.incidents
            if i["status"] in statuses
            and (not team_ids or any(t["id"] in team_ids for t in i["teams"]))
        ]


def layer_doc(**overrides: Any) -> dict[str, Any]:
    """A declared layer as it appears in an API request body."""
    layer = {
        "name": "Primary",
        "start": "2026-01-05T09:00:00+01:00",
        "rotation_virtual_start": "2026-01-05T09:00:00+01:00",
        "rotation_turn_length_seconds": 604800,
        "users": ["PUSER01", "PUSER02"],
        "restriction": [],
    }
    layer.update(overrides)
    return layer


def schedule_doc(**overrides: Any) -> dict[str, Any]:
    """A declared schedule as it appears in an API request body."""
    doc = {
        "name": "Platform on-call",
        "time_zone": "Europe/Paris",
        "teams": ["PTEAM01"],
        "layer": [layer_doc()],
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def fake_pd() -> FakePagerDuty:
    return FakePagerDuty()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def retry_policy(fake_clock: FakeClock) -> RetryPolicy:
    return RetryPolicy(
        interval=2.0,
        lookup_timeout=10,
        read_timeout=30,
        write_timeout=120,
        sleep=fake_clock.sleep,
        clock=fake_clock.monotonic,
    )


@pytest.fixture
def scanner(fake_pd: FakePagerDuty, retry_policy: RetryPolicy) -> DependencyScanner:
    return DependencyScanner(gateway=fake_pd, retry=retry_policy)


@pytest.fixture
def coordinator(
    fake_pd: FakePagerDuty, scanner: DependencyScanner, retry_policy: RetryPolicy
) -> DeletionCoordinator:
    return DeletionCoordinator(gateway=fake_pd, scanner=scanner, retry=retry_policy)


@pytest.fixture
def schedule_repo() -> ScheduleRepository:
    return ScheduleRepository()


@pytest.fixture
def schedule_service(
    fake_pd: FakePagerDuty,
    schedule_repo: ScheduleRepository,
    coordinator: DeletionCoordinator,
    retry_policy: RetryPolicy,
) -> ScheduleService:
    return ScheduleService(
        gateway=fake_pd,
        schedule_repo=schedule_repo,
        coordinator=coordinator,
        retry=retry_policy,
        clock=lambda: NOW,
    )
