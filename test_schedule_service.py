# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for the schedule lifecycle against an in-memory PagerDuty.
Run: pytest test_schedule_service.py -v
"""

import pytest

from conftest import layer_doc, schedule_doc
from schedule_sync.core.errors import (
    BlockedByOpenIncidents,
    NotFoundError,
    TransientRemoteError,
)
from schedule_sync.models.domain import ScheduleDefinition

NOW_CANONICAL = "2026-03-10T12:00:00Z"


def definition(**overrides) -> ScheduleDefinition:
    return ScheduleDefinition.model_validate(schedule_doc(**overrides))


def remote_layer(layer_id: str, **overrides) -> dict:
    layer = {
        "id": layer_id,
        "name": "Imported",
        "start": "2025-11-03T00:00:00Z",
        "end": None,
        "rotation_virtual_start": "2025-11-03T00:00:00Z",
        "rotation_turn_length_seconds": 86400,
        "users": [{"user": {"id": "PUSER09", "type": "user_reference"}}],
        "restrictions": [],
    }
    layer.update(overrides)
    return layer


def remote_layer_by_id(fake_pd, schedule_id: str, layer_id: str) -> dict:
    return next(
        layer for layer in fake_pd.schedules[schedule_id]["schedule_layers"] if layer["id"] == layer_id
    )


@pytest.fixture
def two_layer_schedule(schedule_service):
    """Create a schedule with Primary and Secondary layers; return its state."""
    return schedule_service.create_schedule(
        definition(layer=[layer_doc(name="Primary"), layer_doc(name="Secondary", users=["PUSER03"])])
    )


# ============================================
# Create
# ============================================
class TestCreate:
    def test_create_returns_state(self, schedule_service, schedule_repo):
        state = schedule_service.create_schedule(definition())
        assert state["id"] == "PSCHED1"
        assert state["name"] == "Platform on-call"
        assert state["time_zone"] == "Europe/Paris"
        assert state["description"] == "Managed by Terraform"
        assert state["teams"] == ["PTEAM01"]
        assert state["overflow"] is False
        assert state["final_schedule"] == {"name": "Final Schedule", "rendered_coverage_percentage": "100.00"}
        assert schedule_repo.get("PSCHED1") == state

    def test_layer_state_fields(self, schedule_service):
        layer = schedule_service.create_schedule(definition())["layer"][0]
        assert layer["id"] == "PLAYER2"
        assert layer["start"] == "2026-01-05T09:00:00+01:00"
        assert layer["rotation_virtual_start"] == "2026-01-05T08:00:00Z"
        assert layer["end"] == ""
        assert layer["users"] == ["PUSER01", "PUSER02"]
        assert layer["rendered_coverage_percentage"] == "50.00"

    def test_overflow_forwarded(self, schedule_service, fake_pd):
        state = schedule_service.create_schedule(definition(overflow=True))
        (_, _, overflow), = fake_pd.calls_to("create_schedule")
        assert overflow is True
        assert state["overflow"] is True

    def test_create_retried_on_transient_error(self, schedule_service, fake_pd, fake_clock):
        fake_pd.fail_next("create_schedule", TransientRemoteError("create schedule", status_code=503))
        state = schedule_service.create_schedule(definition())
        assert state["id"]
        assert len(fake_pd.calls_to("create_schedule")) == 2
        assert fake_clock.sleeps == [2.0]

    def test_read_after_create_waits_for_visibility(
        self, schedule_service, fake_pd, fake_clock, monkeypatch
    ):
        real_create = fake_pd.create_schedule

        def create_then_lag(schedule, overflow=False):
            created = real_create(schedule, overflow)
            fake_pd.fail_next("get_schedule", NotFoundError("get schedule", created.id, status_code=404))
            return created

        monkeypatch.setattr(fake_pd, "create_schedule", create_then_lag)
        state = schedule_service.create_schedule(definition())
        assert state["id"] == "PSCHED1"
        assert fake_clock.sleeps == [2.0]

    def test_missing_schedule_on_plain_read_is_not_retried(self, schedule_service, fake_clock):
        with pytest.raises(NotFoundError):
            schedule_service.get_schedule("PNOPE")
        assert fake_clock.sleeps == []


# ============================================
# Update
# ============================================
class TestUpdate:
    def test_dropped_layer_is_end_dated(self, schedule_service, fake_pd, two_layer_schedule):
        primary, secondary = "PLAYER2", "PLAYER3"
        assert [layer["id"] for layer in two_layer_schedule["layer"]] == [secondary, primary]

        state = schedule_service.update_schedule(
            "PSCHED1", definition(layer=[layer_doc(id=primary, name="Primary")])
        )

        assert [layer["id"] for layer in state["layer"]] == [primary]
        assert remote_layer_by_id(fake_pd, "PSCHED1", secondary)["end"] == NOW_CANONICAL
        assert remote_layer_by_id(fake_pd, "PSCHED1", primary)["end"] is None

    def test_update_document_carries_ended_layer(self, schedule_service, fake_pd, two_layer_schedule):
        schedule_service.update_schedule("PSCHED1", definition(layer=[layer_doc(id="PLAYER2")]))
        (_, _, document, _), = fake_pd.calls_to("update_schedule")
        sent = [(layer.id, layer.end) for layer in document.schedule_layers]
        assert sent == [("PLAYER2", None), ("PLAYER3", NOW_CANONICAL)]

    def test_unchanged_declaration_skips_write(self, schedule_service, fake_pd):
        schedule_service.create_schedule(definition())
        state = schedule_service.update_schedule("PSCHED1", definition(layer=[layer_doc(id="PLAYER2")]))
        assert fake_pd.calls_to("update_schedule") == []
        assert state["layer"][0]["id"] == "PLAYER2"

    def test_remote_drift_is_converged(self, schedule_service, fake_pd):
        schedule_service.create_schedule(definition())
        remote_layer_by_id(fake_pd, "PSCHED1", "PLAYER2")["users"] = [
            {"user": {"id": "PROGUE", "type": "user_reference"}}
        ]

        state = schedule_service.update_schedule("PSCHED1", definition(layer=[layer_doc(id="PLAYER2")]))

        assert len(fake_pd.calls_to("update_schedule")) == 1
        assert state["layer"][0]["users"] == ["PUSER01", "PUSER02"]
        remote_users = [u["user"]["id"] for u in remote_layer_by_id(fake_pd, "PSCHED1", "PLAYER2")["users"]]
        assert remote_users == ["PUSER01", "PUSER02"]

    def test_layer_added_outside_is_ended(self, schedule_service, fake_pd):
        schedule_service.create_schedule(definition())
        fake_pd.schedules["PSCHED1"]["schedule_layers"].append(remote_layer("PSTRAY"))

        state = schedule_service.update_schedule("PSCHED1", definition(layer=[layer_doc(id="PLAYER2")]))

        assert [layer["id"] for layer in state["layer"]] == ["PLAYER2"]
        assert remote_layer_by_id(fake_pd, "PSCHED1", "PSTRAY")["end"] == NOW_CANONICAL

    def test_offset_only_difference_is_not_a_change(self, schedule_service, fake_pd):
        schedule_service.create_schedule(definition())
        schedule_service.update_schedule(
            "PSCHED1",
            definition(layer=[layer_doc(id="PLAYER2", start="2026-01-05T08:00:00Z")]),
        )
        assert fake_pd.calls_to("update_schedule") == []

    def test_ended_layer_not_ended_again(self, schedule_service, fake_pd, two_layer_schedule):
        declared = definition(layer=[layer_doc(id="PLAYER2", name="Primary")])
        schedule_service.update_schedule("PSCHED1", declared)
        schedule_service.update_schedule("PSCHED1", declared)
        assert len(fake_pd.calls_to("update_schedule")) == 1

    def test_new_layer_added_alongside_existing(self, schedule_service, fake_pd):
        schedule_service.create_schedule(definition())
        state = schedule_service.update_schedule(
            "PSCHED1",
            definition(layer=[layer_doc(id="PLAYER2"), layer_doc(name="Night", users=["PUSER07"])]),
        )
        assert [layer["name"] for layer in state["layer"]] == ["Night", "Primary"]
        assert all(layer["end"] == "" for layer in state["layer"])

    def test_field_change_written(self, schedule_service, fake_pd):
        schedule_service.create_schedule(definition())
        state = schedule_service.update_schedule(
            "PSCHED1", definition(name="Renamed", layer=[layer_doc(id="PLAYER2")])
        )
        assert len(fake_pd.calls_to("update_schedule")) == 1
        assert state["name"] == "Renamed"

    def test_update_of_unmanaged_schedule_reads_remote_first(self, schedule_service, fake_pd):
        fake_pd.add_schedule("PEXT", [remote_layer("PL9")], teams=["PTEAM01"])
        state = schedule_service.update_schedule("PEXT", definition())
        assert [c[0] for c in fake_pd.calls[:1]] == ["get_schedule"]
        assert remote_layer_by_id(fake_pd, "PEXT", "PL9")["end"] == NOW_CANONICAL
        assert [layer["name"] for layer in state["layer"]] == ["Primary"]

    def test_update_retried_on_transient_error(self, schedule_service, fake_pd, fake_clock):
        schedule_service.create_schedule(definition())
        fake_pd.fail_next("update_schedule", TransientRemoteError("update schedule", "PSCHED1", status_code=500))
        schedule_service.update_schedule("PSCHED1", definition(name="Renamed", layer=[layer_doc(id="PLAYER2")]))
        assert len(fake_pd.calls_to("update_schedule")) == 2
        assert fake_clock.sleeps == [2.0]


# ============================================
# Plan
# ============================================
class TestPlan:
    def test_plan_reports_ended_layer_without_writing(self, schedule_service, fake_pd, two_layer_schedule):
        plan = schedule_service.plan_schedule("PSCHED1", definition(layer=[layer_doc(id="PLAYER2")]))
        assert plan["has_changes"] is True
        assert plan["changes"]["layers"]["ended"] == ["PLAYER3"]
        assert plan["changes"]["fields"] == []
        assert fake_pd.calls_to("update_schedule") == []

    def test_plan_no_changes(self, schedule_service):
        schedule_service.create_schedule(definition())
        plan = schedule_service.plan_schedule("PSCHED1", definition(layer=[layer_doc(id="PLAYER2")]))
        assert plan == {
            "id": "PSCHED1",
            "has_changes": False,
            "changes": {"fields": [], "layers": {"created": [], "changed": [], "ended": []}},
        }

    def test_plan_sees_remote_drift(self, schedule_service, fake_pd):
        schedule_service.create_schedule(definition())
        fake_pd.schedules["PSCHED1"]["name"] = "Renamed in the UI"
        plan = schedule_service.plan_schedule("PSCHED1", definition(layer=[layer_doc(id="PLAYER2")]))
        assert plan["has_changes"] is True
        assert plan["changes"]["fields"] == ["name"]

    def test_plan_field_changes(self, schedule_service):
        schedule_service.create_schedule(definition())
        plan = schedule_service.plan_schedule(
            "PSCHED1",
            definition(time_zone="UTC", teams=[], layer=[layer_doc(id="PLAYER2", users=["PUSER02"])]),
        )
        assert plan["changes"]["fields"] == ["time_zone", "teams"]
        assert plan["changes"]["layers"]["changed"] == [{"id": "PLAYER2", "fields": ["users"]}]


# ============================================
# Read & import
# ============================================
class TestReadAndImport:
    def test_import_adopts_remote_schedule(self, schedule_service, fake_pd, schedule_repo):
        fake_pd.add_schedule(
            "PEXT",
            [remote_layer("PL1", end="2026-01-01T00:00:00Z"), remote_layer("PL2")],
            teams=["PTEAM01"],
            name="Legacy",
        )
        fake_pd.add_policy("PEP1", [[("schedule_reference", "PEXT")]])

        state = schedule_service.import_schedule("PEXT")

        assert state["name"] == "Legacy"
        assert [layer["id"] for layer in state["layer"]] == ["PL2"]
        assert state["escalation_policies"] == ["PEP1"]
        assert schedule_repo.exists("PEXT")
        assert schedule_service.list_schedules() == [state]

    def test_import_missing_schedule(self, schedule_service):
        with pytest.raises(NotFoundError):
            schedule_service.import_schedule("PNOPE")

    def test_get_keeps_stored_overflow(self, schedule_service):
        schedule_service.create_schedule(definition(overflow=True))
        assert schedule_service.get_schedule("PSCHED1")["overflow"] is True

    def test_get_missing_forgets_state(self, schedule_service, fake_pd, schedule_repo):
        schedule_service.create_schedule(definition())
        del fake_pd.schedules["PSCHED1"]
        with pytest.raises(NotFoundError):
            schedule_service.get_schedule("PSCHED1")
        assert not schedule_repo.exists("PSCHED1")

    def test_get_retries_transient_read(self, schedule_service, fake_pd, fake_clock):
        schedule_service.create_schedule(definition())
        fake_pd.fail_next("get_schedule", TransientRemoteError("get schedule", "PSCHED1", status_code=502))
        assert schedule_service.get_schedule("PSCHED1")["id"] == "PSCHED1"
        assert fake_clock.sleeps == [2.0]


# ============================================
# Delete
# ============================================
class TestDelete:
    def test_delete_forgets_state(self, schedule_service, fake_pd, schedule_repo):
        schedule_service.create_schedule(definition())
        result = schedule_service.delete_schedule("PSCHED1")
        assert result == {"status": "deleted", "id": "PSCHED1"}
        assert "PSCHED1" not in fake_pd.schedules
        assert not schedule_repo.exists("PSCHED1")

    def test_delete_already_absent(self, schedule_service, schedule_repo):
        schedule_repo.save("PGONE", {"id": "PGONE"})
        assert schedule_service.delete_schedule("PGONE")["status"] == "deleted"
        assert not schedule_repo.exists("PGONE")

    def test_blocked_delete_keeps_state(self, schedule_service, fake_pd, schedule_repo):
        schedule_service.create_schedule(definition())
        fake_pd.add_incident("PINC1", "PTEAM01", status="acknowledged")
        with pytest.raises(BlockedByOpenIncidents):
            schedule_service.delete_schedule("PSCHED1")
        assert schedule_repo.exists("PSCHED1")
        assert "PSCHED1" in fake_pd.schedules
