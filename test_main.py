# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for Rotation Service v1.0.0
HTTP contract, service wiring, storage and outbound notifications.
"""

import random
from datetime import date, timedelta
from unittest.mock import MagicMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from main import app
from rosca.core.config import settings
from rosca.core.database import build_engine
from rosca.core.dependencies import (
    get_draft_repo,
    get_group_repo,
    get_history_repo,
    get_invite_repo,
)
from rosca.core.errors import CycleInProgress
from rosca.middleware import normalize_path
from rosca.models.domain import GroupStatus, TimelineStatus
from rosca.repositories.draft_repository import DraftRepository
from rosca.repositories.group_repository import InMemoryGroupRepository, SqlGroupRepository
from rosca.repositories.history_repository import HistoryRepository
from rosca.repositories.invite_repository import InviteRequestRepository
from rosca.services.assignment_service import AssignmentService
from rosca.services.group_service import GroupService
from rosca.services.invite_service import InviteService
from rosca.services.notification_client import NotificationClient
from rosca.services.timeline_service import TimelineService

client = TestClient(app)


# ============================================
# Fixtures & helpers
# ============================================
@pytest.fixture(autouse=True)
def reset_state():
    """Reset in-memory state before each test."""
    get_group_repo().clear()
    get_draft_repo().clear()
    get_history_repo().clear()
    get_invite_repo().clear()
    yield


def _create_group(member_count=3, monthly_amount=50000, start_date="2024-01-15", joined=3):
    response = client.post("/api/v1/groups", json={
        "name": "Market Women Adashi",
        "member_count": member_count,
        "monthly_amount": monthly_amount,
        "start_date": start_date,
        "owner": {"id": "ada", "name": "Ada Obi", "email": "ada@example.com"},
    })
    assert response.status_code == 201
    group = response.json()
    for member_id, name in [("bola", "Bola Ade"), ("chike", "Chike Eze"), ("dayo", "Dayo Ola")][: joined - 1]:
        r = client.post(f"/api/v1/groups/{group['id']}/members", json={"id": member_id, "name": name})
        assert r.status_code == 201
    return client.get(f"/api/v1/groups/{group['id']}").json()


def _assign_in_order(group_id):
    client.post(f"/api/v1/groups/{group_id}/assignment/auto")
    response = client.post(f"/api/v1/groups/{group_id}/assignment/save")
    assert response.status_code == 200
    return response.json()


def _positions(group):
    return {m["id"]: m["rotation_position"] for m in group["members"]}


# ============================================
# Health & Metrics
# ============================================
class TestHealth:
    def test_health_returns_ok_status(self):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == settings.SERVICE_NAME
        assert data["version"] == settings.SERVICE_VERSION
        assert data["groups_count"] == 0

    def test_health_counts_groups(self):
        _create_group()
        assert client.get("/health").json()["groups_count"] == 1

    def test_readiness(self):
        data = client.get("/health/ready").json()
        assert data["status"] == "ready"
        assert data["storage"] == "memory"
        assert data["groups_loaded"] is False


class TestRequestID:
    def test_request_id_propagated(self):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_auto_generated_request_id(self):
        response = client.get("/health")
        assert len(response.headers.get("X-Request-ID", "")) > 0


class TestMetrics:
    def test_metrics_exposed(self):
        _create_group()
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "rotation_groups_created_total" in response.text
        assert "rotation_requests_total" in response.text

    def test_normalize_path_collapses_ids(self):
        assert normalize_path("/api/v1/groups/abc-123/raffle/xyz/confirm") == (
            "/api/v1/groups/{param}/raffle/{param}/confirm"
        )
        assert normalize_path("/") == "/"


# ============================================
# Groups & membership
# ============================================
class TestGroups:
    def test_create_group(self):
        group = _create_group(joined=1)
        assert group["name"] == "Market Women Adashi"
        assert group["member_count"] == 3
        assert group["monthly_amount"] == 50000
        assert group["start_date"] == "2024-01-15"
        assert group["status"] == "forming"
        assert len(group["invite_code"]) == 6
        assert group["members"][0]["role"] == "owner"
        assert group["members"][0]["rotation_position"] == 0
        assert group["timeline"] == []

    @pytest.mark.parametrize("payload_update, code", [
        ({"name": "ab"}, "invalid-group"),
        ({"name": "x" * 51}, "invalid-group"),
        ({"monthly_amount": 0}, "invalid-group"),
        ({"monthly_amount": 999}, "invalid-group"),
        ({"monthly_amount": 10_000_001}, "invalid-group"),
        ({"member_count": 1}, "invalid-member-count"),
        ({"member_count": 51}, "invalid-member-count"),
    ])
    def test_create_group_validation(self, payload_update, code):
        payload = {
            "name": "Valid Name",
            "member_count": 3,
            "monthly_amount": 5000,
            "owner": {"id": "ada", "name": "Ada"},
        }
        payload.update(payload_update)
        response = client.post("/api/v1/groups", json=payload)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == code

    def test_start_date_defaults_to_today(self):
        response = client.post("/api/v1/groups", json={
            "name": "Today Group", "member_count": 2, "monthly_amount": 5000,
            "owner": {"id": "ada", "name": "Ada"},
        })
        assert response.status_code == 201
        start = date.fromisoformat(response.json()["start_date"])
        assert abs((start - date.today()).days) <= 1

    def test_list_and_get(self):
        group = _create_group()
        assert len(client.get("/api/v1/groups").json()) == 1
        assert client.get(f"/api/v1/groups/{group['id']}").json()["id"] == group["id"]

    def test_get_unknown_group(self):
        response = client.get("/api/v1/groups/nope")
        assert response.status_code == 404
        detail = response.json()["detail"]
        assert detail["code"] == "not-found"
        assert "nope" in detail["message"]

    def test_delete_group(self):
        group = _create_group()
        response = client.delete(f"/api/v1/groups/{group['id']}")
        assert response.json() == {"status": "deleted", "group_id": group["id"]}
        assert client.get(f"/api/v1/groups/{group['id']}").status_code == 404
        assert client.delete(f"/api/v1/groups/{group['id']}").status_code == 404

    def test_join_by_invite_code(self):
        group = _create_group(joined=1)
        response = client.post("/api/v1/groups/join", json={
            "invite_code": group["invite_code"].lower(),
            "member": {"id": "bola", "name": "Bola"},
        })
        assert response.status_code == 200
        assert [m["id"] for m in response.json()["members"]] == ["ada", "bola"]

    def test_join_unknown_code(self):
        response = client.post("/api/v1/groups/join", json={
            "invite_code": "ZZZZZZ", "member": {"id": "bola", "name": "Bola"},
        })
        assert response.status_code == 404

    def test_join_full_group(self):
        group = _create_group(member_count=2, joined=2)
        response = client.post(f"/api/v1/groups/{group['id']}/members", json={"id": "x", "name": "X"})
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "group-full"

    def test_rejoin_is_noop(self):
        group = _create_group(joined=2)
        response = client.post(f"/api/v1/groups/{group['id']}/members", json={"id": "bola", "name": "Bola"})
        assert response.status_code == 201
        assert len(response.json()["members"]) == 2

    def test_member_cannot_claim_owner_role(self):
        response = client.post("/api/v1/groups/x/members", json={"id": "b", "name": "B", "role": "owner"})
        assert response.status_code == 422

    def test_remove_member_while_forming(self):
        group = _create_group()
        response = client.delete(f"/api/v1/groups/{group['id']}/members/bola")
        assert response.status_code == 200
        assert [m["id"] for m in response.json()["members"]] == ["ada", "chike"]

    def test_owner_cannot_leave(self):
        group = _create_group()
        response = client.delete(f"/api/v1/groups/{group['id']}/members/ada")
        assert response.status_code == 400

    def test_member_with_turn_cannot_leave_running_cycle(self):
        group = _create_group()
        _assign_in_order(group["id"])
        response = client.delete(f"/api/v1/groups/{group['id']}/members/bola")
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "cycle-in-progress"

    def test_remove_unknown_member(self):
        group = _create_group()
        assert client.delete(f"/api/v1/groups/{group['id']}/members/zed").status_code == 404


# ============================================
# Manual assignment
# ============================================
class TestManualAssignment:
    def test_assign_updates_draft_only(self):
        group = _create_group()
        response = client.put(f"/api/v1/groups/{group['id']}/assignment/bola", json={"position": 1})
        assert response.status_code == 200
        draft = response.json()
        assert draft["strategy"] == "manual"
        assert draft["positions"] == {"ada": 0, "bola": 1, "chike": 0}
        stored = client.get(f"/api/v1/groups/{group['id']}").json()
        assert _positions(stored) == {"ada": 0, "bola": 0, "chike": 0}

    def test_assign_taken_position_swaps(self):
        group = _create_group()
        gid = group["id"]
        client.put(f"/api/v1/groups/{gid}/assignment/ada", json={"position": 1})
        client.put(f"/api/v1/groups/{gid}/assignment/bola", json={"position": 2})
        draft = client.put(f"/api/v1/groups/{gid}/assignment/ada", json={"position": 2}).json()
        assert draft["positions"] == {"ada": 2, "bola": 1, "chike": 0}

    def test_swap_with_unassigned_member(self):
        group = _create_group()
        gid = group["id"]
        client.put(f"/api/v1/groups/{gid}/assignment/ada", json={"position": 3})
        draft = client.put(f"/api/v1/groups/{gid}/assignment/bola", json={"position": 3}).json()
        assert draft["positions"] == {"ada": 0, "bola": 3, "chike": 0}

    def test_position_out_of_range(self):
        group = _create_group()
        response = client.put(f"/api/v1/groups/{group['id']}/assignment/ada", json={"position": 4})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "position-out-of-range"

    def test_unknown_member(self):
        group = _create_group()
        response = client.put(f"/api/v1/groups/{group['id']}/assignment/zed", json={"position": 1})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "unknown-member"

    def test_unassign(self):
        group = _create_group()
        gid = group["id"]
        client.put(f"/api/v1/groups/{gid}/assignment/ada", json={"position": 1})
        draft = client.delete(f"/api/v1/groups/{gid}/assignment/ada").json()
        assert draft["positions"]["ada"] == 0

    def test_auto_assign_keeps_existing(self):
        group = _create_group()
        gid = group["id"]
        client.put(f"/api/v1/groups/{gid}/assignment/chike", json={"position": 1})
        draft = client.post(f"/api/v1/groups/{gid}/assignment/auto").json()
        assert draft["positions"] == {"ada": 2, "bola": 3, "chike": 1}

    def test_validate_reports_incomplete(self):
        group = _create_group()
        gid = group["id"]
        client.put(f"/api/v1/groups/{gid}/assignment/ada", json={"position": 1})
        result = client.get(f"/api/v1/groups/{gid}/assignment/validate").json()
        assert result["ok"] is False
        assert result["error"] == "incomplete-assignment"
        assert result["assigned"] == 1
        assert result["total"] == 3

    def test_save_blocked_when_incomplete(self):
        group = _create_group()
        gid = group["id"]
        client.put(f"/api/v1/groups/{gid}/assignment/ada", json={"position": 1})
        response = client.post(f"/api/v1/groups/{gid}/assignment/save")
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "incomplete-assignment"
        stored = client.get(f"/api/v1/groups/{gid}").json()
        assert _positions(stored) == {"ada": 0, "bola": 0, "chike": 0}
        assert stored["timeline"] == []
        # Draft survives so the admin can finish it
        assert client.get(f"/api/v1/groups/{gid}/assignment").json()["draft"] is not None

    def test_save_commits_and_generates_timeline(self):
        group = _create_group()
        saved = _assign_in_order(group["id"])
        assert _positions(saved) == {"ada": 1, "bola": 2, "chike": 3}
        assert saved["status"] == "active"
        assert [(e["position"], e["member_id"], e["amount"], e["due_date"], e["status"]) for e in saved["timeline"]] == [
            (1, "ada", 150000, "2024-01-15", "current"),
            (2, "bola", 150000, "2024-02-15", "upcoming"),
            (3, "chike", 150000, "2024-03-15", "upcoming"),
        ]
        assignment = client.get(f"/api/v1/groups/{group['id']}/assignment").json()
        assert assignment["draft"] is None
        assert assignment["positions"] == {"ada": 1, "bola": 2, "chike": 3}

    def test_discard_draft(self):
        group = _create_group()
        gid = group["id"]
        client.put(f"/api/v1/groups/{gid}/assignment/ada", json={"position": 1})
        assert client.delete(f"/api/v1/groups/{gid}/draft").json()["discarded"] is True
        assert client.delete(f"/api/v1/groups/{gid}/draft").json()["discarded"] is False
        assert client.get(f"/api/v1/groups/{gid}/assignment").json()["draft"] is None

    def test_unknown_group(self):
        assert client.put("/api/v1/groups/nope/assignment/ada", json={"position": 1}).status_code == 404
        assert client.get("/api/v1/groups/nope/assignment/validate").status_code == 404

    def test_partial_group_rejects_positions_beyond_joined_members(self):
        group = _create_group(member_count=5, joined=3)
        gid = group["id"]
        response = client.put(f"/api/v1/groups/{gid}/assignment/ada", json={"position": 5})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "position-out-of-range"

    def test_partial_group_manual_then_auto_is_saveable(self):
        group = _create_group(member_count=5, joined=3)
        gid = group["id"]
        client.put(f"/api/v1/groups/{gid}/assignment/ada", json={"position": 3})
        draft = client.post(f"/api/v1/groups/{gid}/assignment/auto").json()
        assert draft["positions"] == {"ada": 3, "bola": 1, "chike": 2}
        assert client.get(f"/api/v1/groups/{gid}/assignment/validate").json()["ok"] is True
        saved = client.post(f"/api/v1/groups/{gid}/assignment/save")
        assert saved.status_code == 200
        assert [e["member_id"] for e in saved.json()["timeline"]] == ["bola", "chike", "ada"]


# ============================================
# Raffle
# ============================================
class TestRaffle:
    def test_raffle_preview_does_not_persist(self):
        group = _create_group()
        gid = group["id"]
        response = client.post(f"/api/v1/groups/{gid}/raffle")
        assert response.status_code == 201
        draft = response.json()
        assert draft["strategy"] == "raffle"
        assert sorted(draft["positions"].values()) == [1, 2, 3]
        stored = client.get(f"/api/v1/groups/{gid}").json()
        assert _positions(stored) == {"ada": 0, "bola": 0, "chike": 0}

    def test_confirm_commits_positions(self):
        group = _create_group()
        gid = group["id"]
        draft = client.post(f"/api/v1/groups/{gid}/raffle").json()
        response = client.post(f"/api/v1/groups/{gid}/raffle/{draft['draft_id']}/confirm")
        assert response.status_code == 200
        committed = response.json()
        assert _positions(committed) == draft["positions"]
        assert len(committed["timeline"]) == 3
        assert client.get(f"/api/v1/groups/{gid}/assignment").json()["draft"] is None

    def test_redo_replaces_previous_draw(self):
        group = _create_group()
        gid = group["id"]
        first = client.post(f"/api/v1/groups/{gid}/raffle").json()
        second = client.post(f"/api/v1/groups/{gid}/raffle").json()
        assert first["draft_id"] != second["draft_id"]
        response = client.post(f"/api/v1/groups/{gid}/raffle/{first['draft_id']}/confirm")
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "stale-draft"

    def test_confirm_without_raffle(self):
        group = _create_group()
        response = client.post(f"/api/v1/groups/{group['id']}/raffle/missing/confirm")
        assert response.status_code == 404

    def test_membership_change_discards_raffle(self):
        group = _create_group(member_count=4, joined=3)
        gid = group["id"]
        draft = client.post(f"/api/v1/groups/{gid}/raffle").json()
        client.post(f"/api/v1/groups/{gid}/members", json={"id": "dayo", "name": "Dayo"})
        response = client.post(f"/api/v1/groups/{gid}/raffle/{draft['draft_id']}/confirm")
        assert response.status_code == 404

    def test_manual_edit_replaces_raffle_preview(self):
        group = _create_group()
        gid = group["id"]
        client.post(f"/api/v1/groups/{gid}/raffle")
        draft = client.put(f"/api/v1/groups/{gid}/assignment/ada", json={"position": 2}).json()
        assert draft["strategy"] == "manual"
        assert draft["positions"] == {"ada": 2, "bola": 0, "chike": 0}

    def test_save_refuses_pending_raffle(self):
        group = _create_group()
        gid = group["id"]
        client.post(f"/api/v1/groups/{gid}/raffle")
        response = client.post(f"/api/v1/groups/{gid}/assignment/save")
        assert response.status_code == 409

    def test_partial_group_raffle(self):
        group = _create_group(member_count=5, joined=3)
        gid = group["id"]
        draft = client.post(f"/api/v1/groups/{gid}/raffle").json()
        committed = client.post(f"/api/v1/groups/{gid}/raffle/{draft['draft_id']}/confirm").json()
        assert len(committed["timeline"]) == 3
        assert all(e["amount"] == 250000 for e in committed["timeline"])


# ============================================
# Timeline
# ============================================
class TestTimeline:
    def test_generate_requires_assignment(self):
        group = _create_group()
        response = client.post(f"/api/v1/groups/{group['id']}/timeline")
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "incomplete-assignment"

    def test_get_timeline(self):
        group = _create_group()
        _assign_in_order(group["id"])
        timeline = client.get(f"/api/v1/groups/{group['id']}/timeline").json()
        assert [e["position"] for e in timeline] == [1, 2, 3]

    def test_regenerate_is_deterministic(self):
        group = _create_group()
        first = _assign_in_order(group["id"])["timeline"]
        second = client.post(f"/api/v1/groups/{group['id']}/timeline").json()
        assert first == second

    def test_complete_collection_advances(self):
        group = _create_group()
        gid = group["id"]
        _assign_in_order(gid)
        response = client.post(
            f"/api/v1/groups/{gid}/timeline/1/complete", json={"collection_date": "2024-01-15"}
        )
        assert response.status_code == 200
        timeline = response.json()
        assert [e["status"] for e in timeline] == ["completed", "current", "upcoming"]
        assert timeline[0]["collection_date"] == "2024-01-15"

    def test_complete_defaults_to_today(self):
        group = _create_group()
        gid = group["id"]
        _assign_in_order(gid)
        timeline = client.post(f"/api/v1/groups/{gid}/timeline/1/complete").json()
        stamped = date.fromisoformat(timeline[0]["collection_date"])
        assert abs((stamped - date.today()).days) <= 1

    def test_complete_out_of_turn(self):
        group = _create_group()
        gid = group["id"]
        _assign_in_order(gid)
        response = client.post(f"/api/v1/groups/{gid}/timeline/3/complete")
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid-status-transition"

    def test_future_collection_date(self):
        group = _create_group()
        gid = group["id"]
        _assign_in_order(gid)
        future = (date.today() + timedelta(days=30)).isoformat()
        response = client.post(f"/api/v1/groups/{gid}/timeline/1/complete", json={"collection_date": future})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid-collection-date"

    def test_full_cycle_completes_group(self):
        group = _create_group()
        gid = group["id"]
        _assign_in_order(gid)
        for position, day in [(1, "2024-01-15"), (2, "2024-02-15"), (3, "2024-03-15")]:
            r = client.post(f"/api/v1/groups/{gid}/timeline/{position}/complete", json={"collection_date": day})
            assert r.status_code == 200
        stored = client.get(f"/api/v1/groups/{gid}").json()
        assert stored["status"] == "completed"
        assert all(e["status"] == "completed" for e in stored["timeline"])
        events = client.get("/api/v1/history", params={"group_id": gid, "event_type": "cycle_completed"}).json()
        assert len(events) == 1

    def test_reassignment_after_collection_needs_reset(self):
        group = _create_group()
        gid = group["id"]
        _assign_in_order(gid)
        client.post(f"/api/v1/groups/{gid}/timeline/1/complete", json={"collection_date": "2024-01-15"})
        client.put(f"/api/v1/groups/{gid}/assignment/chike", json={"position": 1})

        response = client.post(f"/api/v1/groups/{gid}/assignment/save")
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "cycle-in-progress"

        response = client.post(f"/api/v1/groups/{gid}/assignment/save", json={"reset_cycle": True})
        assert response.status_code == 200
        timeline = response.json()["timeline"]
        assert [e["member_id"] for e in timeline] == ["chike", "bola", "ada"]
        assert [e["status"] for e in timeline] == ["current", "upcoming", "upcoming"]
        assert all(e["collection_date"] is None for e in timeline)

    def test_summary(self):
        group = _create_group()
        gid = group["id"]
        _assign_in_order(gid)
        client.post(f"/api/v1/groups/{gid}/timeline/1/complete", json={"collection_date": "2024-01-15"})
        summary = client.get(f"/api/v1/groups/{gid}/summary").json()
        assert summary["status"] == "active"
        assert summary["positions_assigned"] == 3
        assert summary["total_pool"] == 150000
        assert summary["total_pool_display"] == "₦150,000"
        assert summary["total_collected"] == 150000
        assert summary["cycle_progress"] == 33.33
        assert summary["cycle_end_date"] == "2024-04-15"
        assert summary["current_recipient"] == "Bola Ade"
        assert summary["next_payment_due"] == "2024-02-15"
        assert summary["days_left"] < 0

    def test_summary_without_timeline(self):
        group = _create_group()
        summary = client.get(f"/api/v1/groups/{group['id']}/summary").json()
        assert summary["current_recipient"] is None
        assert summary["days_left"] is None
        assert summary["cycle_progress"] == 0.0


# ============================================
# History & Stats
# ============================================
class TestHistoryAndStats:
    def test_history_records_lifecycle(self):
        group = _create_group()
        _assign_in_order(group["id"])
        events = [e["event_type"] for e in client.get("/api/v1/history").json()]
        for expected in ("group_created", "member_joined", "positions_auto_assigned",
                         "assignment_saved", "timeline_generated"):
            assert expected in events

    def test_history_limit(self):
        _create_group()
        assert len(client.get("/api/v1/history", params={"limit": 1}).json()) == 1

    def test_stats(self):
        group = _create_group()
        client.post(f"/api/v1/groups/{group['id']}/raffle")
        stats = client.get("/api/v1/stats").json()
        assert stats["total_groups"] == 1
        assert stats["total_members"] == 3
        assert stats["pending_drafts"] == 1
        assert stats["group_statuses"] == {"forming": 1}
        assert stats["event_types"]["raffle_run"] == 1


# ============================================
# Storage, services and notifications
# ============================================
def _services(group_repo, rng=None):
    drafts, history = DraftRepository(), HistoryRepository()
    notifications = MagicMock(spec=NotificationClient)
    groups = GroupService(group_repo, drafts, history)
    timelines = TimelineService(group_repo, history, notifications)
    assignments = AssignmentService(group_repo, drafts, history, timelines, rng=rng)
    return groups, assignments, timelines, notifications


class TestSqlRepository:
    def test_round_trip(self):
        repo = SqlGroupRepository(build_engine("sqlite://"))
        groups, _, _, _ = _services(repo)
        group = groups.create_group(
            "Sql Circle", 5000, 2, {"id": "ada", "name": "Ada"}, start_date=date(2024, 1, 31)
        )
        assert repo.count() == 1
        assert repo.exists(group.id)
        loaded = repo.get(group.id)
        assert loaded.model_dump(mode="json") == group.model_dump(mode="json")
        assert repo.find_by_invite_code(group.invite_code).id == group.id
        assert repo.get("missing") is None
        assert repo.delete(group.id).id == group.id
        assert repo.count() == 0

    def test_full_flow_over_sql(self):
        repo = SqlGroupRepository(build_engine("sqlite://"))
        groups, assignments, timelines, _ = _services(repo, rng=random.Random(5))
        group = groups.create_group(
            "Sql Circle", 5000, 2, {"id": "ada", "name": "Ada"}, start_date=date(2024, 1, 31)
        )
        groups.add_member(group.id, {"id": "bola", "name": "Bola"})
        draft = assignments.run_raffle(group.id)
        committed = assignments.confirm_raffle(group.id, draft.draft_id)
        assert committed.status == GroupStatus.ACTIVE
        assert [e.due_date for e in committed.timeline] == [date(2024, 1, 31), date(2024, 2, 29)]
        assert all(e.amount == 10000 for e in committed.timeline)
        entries = timelines.advance_timeline_status(group.id, 1, date(2024, 1, 31))
        assert entries[0].status == TimelineStatus.COMPLETED
        assert repo.get(group.id).timeline[1].status == TimelineStatus.CURRENT

    def test_snapshots_are_copies(self):
        repo = SqlGroupRepository(build_engine("sqlite://"))
        groups, _, _, _ = _services(repo)
        group = groups.create_group("Copy Circle", 5000, 2, {"id": "ada", "name": "Ada"})
        snapshot = repo.get(group.id)
        snapshot.members[0].rotation_position = 2
        assert repo.get(group.id).members[0].rotation_position == 0


class TestRegeneration:
    def test_reassignment_discards_old_entries(self):
        repo = InMemoryGroupRepository()
        groups, assignments, timelines, _ = _services(repo)
        group = groups.create_group("Regen Circle", 5000, 3, {"id": "a", "name": "A"},
                                    start_date=date(2024, 1, 15))
        groups.add_member(group.id, {"id": "b", "name": "B"})
        groups.add_member(group.id, {"id": "c", "name": "C"})
        assignments.auto_assign_remaining(group.id)
        first = assignments.save_assignment(group.id).timeline

        assignments.assign_position(group.id, "c", 1)
        second = assignments.save_assignment(group.id).timeline

        assert len(second) == 3
        assert [e.member_id for e in first] == ["a", "b", "c"]
        assert [e.member_id for e in second] == ["c", "b", "a"]
        assert {(e.position, e.member_id) for e in second}.isdisjoint(
            {(1, "a"), (3, "c")}
        )

    def test_regenerating_after_a_collection_needs_reset(self):
        group = _create_group()
        gid = group["id"]
        _assign_in_order(gid)
        client.post(f"/api/v1/groups/{gid}/timeline/1/complete", json={"collection_date": "2024-01-15"})

        response = client.post(f"/api/v1/groups/{gid}/timeline")
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "cycle-in-progress"
        stored = client.get(f"/api/v1/groups/{gid}/timeline").json()
        assert stored[0]["status"] == "completed"
        assert stored[0]["collection_date"] == "2024-01-15"

        response = client.post(f"/api/v1/groups/{gid}/timeline", json={"reset_cycle": True})
        assert response.status_code == 200
        assert [e["status"] for e in response.json()] == ["current", "upcoming", "upcoming"]

    def test_completed_group_is_not_reopened_without_reset(self):
        repo = InMemoryGroupRepository()
        groups, assignments, timelines, _ = _services(repo)
        group = groups.create_group("Done Circle", 5000, 2, {"id": "a", "name": "A"},
                                    start_date=date(2024, 1, 15))
        groups.add_member(group.id, {"id": "b", "name": "B"})
        assignments.auto_assign_remaining(group.id)
        assignments.save_assignment(group.id)
        timelines.advance_timeline_status(group.id, 1, date(2024, 1, 15))
        timelines.advance_timeline_status(group.id, 2, date(2024, 2, 15))

        with pytest.raises(CycleInProgress):
            timelines.generate_timeline(group.id)
        assert repo.get(group.id).status == GroupStatus.COMPLETED


class TestNotifications:
    def test_current_recipient_is_notified(self):
        repo = InMemoryGroupRepository()
        groups, assignments, _, notifications = _services(repo)
        group = groups.create_group("Notify Circle", 5000, 2,
                                    {"id": "a", "name": "A", "email": "a@example.com"},
                                    start_date=date(2024, 1, 15))
        groups.add_member(group.id, {"id": "b", "name": "B", "email": "b@example.com"})
        assignments.auto_assign_remaining(group.id)
        assignments.save_assignment(group.id)
        notifications.send.assert_called_once()
        assert notifications.send.call_args.kwargs["recipient"] == "a@example.com"

    def test_disabled_client_sends_nothing(self):
        with patch("rosca.services.notification_client.httpx.Client") as mock_client:
            NotificationClient(base_url="").send("email", "a@example.com", "hi")
        mock_client.assert_not_called()

    def test_client_posts_to_notification_service(self):
        with patch("rosca.services.notification_client.httpx.Client") as mock_client:
            instance = mock_client.return_value.__enter__.return_value
            instance.post.return_value.status_code = 200
            NotificationClient(base_url="http://notify:8004").send(
                "email", "a@example.com", "Your turn", group_id="g1"
            )
        url = instance.post.call_args.args[0]
        assert url == "http://notify:8004/api/v1/notify"
        assert instance.post.call_args.kwargs["json"]["group_id"] == "g1"

    def test_client_failure_is_swallowed(self):
        with patch("rosca.services.notification_client.httpx.Client") as mock_client:
            mock_client.return_value.__enter__.return_value.post.side_effect = (
                httpx.ConnectError("refused")
            )
            NotificationClient(base_url="http://notify:8004").send("email", "a@example.com", "hi")


# ============================================
# Startup / shutdown
# ============================================
class TestLifespan:
    def test_startup_seeds_demo_group(self):
        with TestClient(app) as started:
            groups = started.get("/api/v1/groups").json()
        assert [g["name"] for g in groups] == ["Market Women Adashi"]
        assert groups[0]["status"] == "active"

    def test_sql_engine_disposed_on_shutdown(self):
        repo = MagicMock(spec=SqlGroupRepository)
        repo.count.return_value = 1
        with patch("main.get_group_repo", return_value=repo):
            with TestClient(app):
                pass
        repo.dispose.assert_called_once()


# ============================================
# Invite requests
# ============================================
def _request_to_join(group_id, requester_id="dayo", email=None):
    requester = {"id": requester_id, "name": requester_id.title()}
    if email:
        requester["email"] = email
    return client.post(
        f"/api/v1/groups/{group_id}/requests",
        json={"requester": requester, "message": "Market neighbour"},
    )


class TestInviteRequests:
    def test_request_is_pending(self):
        group = _create_group(member_count=4, joined=3)
        response = _request_to_join(group["id"])
        assert response.status_code == 201
        request = response.json()
        assert request["status"] == "pending"
        assert request["group_name"] == "Market Women Adashi"
        assert request["message"] == "Market neighbour"
        stored = client.get(f"/api/v1/groups/{group['id']}").json()
        assert "dayo" not in [m["id"] for m in stored["members"]]

    def test_repeat_request_returns_existing(self):
        group = _create_group(member_count=4, joined=3)
        first = _request_to_join(group["id"]).json()
        second = _request_to_join(group["id"]).json()
        assert first["id"] == second["id"]
        assert len(client.get(f"/api/v1/groups/{group['id']}/requests").json()) == 1

    def test_member_cannot_request(self):
        group = _create_group(member_count=4, joined=3)
        response = _request_to_join(group["id"], requester_id="bola")
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid-group"

    def test_full_group_rejects_request(self):
        group = _create_group(member_count=3, joined=3)
        response = _request_to_join(group["id"])
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "group-full"

    def test_unknown_group(self):
        assert _request_to_join("nope").status_code == 404

    def test_owner_approves(self):
        group = _create_group(member_count=4, joined=3)
        gid = group["id"]
        request = _request_to_join(gid).json()
        response = client.post(
            f"/api/v1/groups/{gid}/requests/{request['id']}/approve", json={"admin_id": "ada"}
        )
        assert response.status_code == 200
        assert [m["id"] for m in response.json()["members"]][-1] == "dayo"
        answered = client.get(f"/api/v1/groups/{gid}/requests", params={"status": "approved"}).json()
        assert answered[0]["responded_by"] == "ada"
        assert answered[0]["responded_at"] is not None

    def test_approval_discards_pending_draft(self):
        group = _create_group(member_count=4, joined=3)
        gid = group["id"]
        request = _request_to_join(gid).json()
        client.post(f"/api/v1/groups/{gid}/raffle")
        client.post(f"/api/v1/groups/{gid}/requests/{request['id']}/approve", json={"admin_id": "ada"})
        assert client.get(f"/api/v1/groups/{gid}/assignment").json()["draft"] is None

    def test_plain_member_cannot_answer(self):
        group = _create_group(member_count=4, joined=3)
        gid = group["id"]
        request = _request_to_join(gid).json()
        response = client.post(
            f"/api/v1/groups/{gid}/requests/{request['id']}/approve", json={"admin_id": "bola"}
        )
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "not-group-admin"

    def test_deny_with_reason(self):
        group = _create_group(member_count=4, joined=3)
        gid = group["id"]
        request = _request_to_join(gid).json()
        response = client.post(
            f"/api/v1/groups/{gid}/requests/{request['id']}/deny",
            json={"admin_id": "ada", "reason": "Circle is closed"},
        )
        assert response.status_code == 200
        denied = response.json()
        assert denied["status"] == "denied"
        assert denied["message"] == "Circle is closed"
        stored = client.get(f"/api/v1/groups/{gid}").json()
        assert "dayo" not in [m["id"] for m in stored["members"]]

    def test_answered_request_cannot_be_answered_again(self):
        group = _create_group(member_count=4, joined=3)
        gid = group["id"]
        request = _request_to_join(gid).json()
        client.post(f"/api/v1/groups/{gid}/requests/{request['id']}/deny", json={"admin_id": "ada"})
        response = client.post(
            f"/api/v1/groups/{gid}/requests/{request['id']}/approve", json={"admin_id": "ada"}
        )
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "request-already-answered"

    def test_request_for_other_group_is_not_found(self):
        first = _create_group(member_count=4, joined=3)
        second = _create_group(member_count=4, joined=1)
        request = _request_to_join(first["id"]).json()
        response = client.post(
            f"/api/v1/groups/{second['id']}/requests/{request['id']}/approve",
            json={"admin_id": "ada"},
        )
        assert response.status_code == 404

    def test_approval_blocked_when_group_filled_meanwhile(self):
        group = _create_group(member_count=4, joined=3)
        gid = group["id"]
        request = _request_to_join(gid).json()
        client.post(f"/api/v1/groups/{gid}/members", json={"id": "eze", "name": "Eze"})
        response = client.post(
            f"/api/v1/groups/{gid}/requests/{request['id']}/approve", json={"admin_id": "ada"}
        )
        assert response.status_code == 409
        pending = client.get(f"/api/v1/groups/{gid}/requests", params={"status": "pending"}).json()
        assert [r["id"] for r in pending] == [request["id"]]

    def test_deleting_group_drops_requests(self):
        group = _create_group(member_count=4, joined=3)
        _request_to_join(group["id"])
        client.delete(f"/api/v1/groups/{group['id']}")
        assert get_invite_repo().count_pending() == 0

    def test_history_records_answers(self):
        group = _create_group(member_count=4, joined=3)
        gid = group["id"]
        request = _request_to_join(gid).json()
        client.post(f"/api/v1/groups/{gid}/requests/{request['id']}/approve", json={"admin_id": "ada"})
        events = [e["event_type"] for e in client.get("/api/v1/history", params={"group_id": gid}).json()]
        assert "invite_requested" in events
        assert "invite_approved" in events

    def test_requester_is_told_the_outcome(self):
        repo = InMemoryGroupRepository()
        groups, _, _, notifications = _services(repo)
        service = InviteService(groups, InviteRequestRepository(), HistoryRepository(), notifications)
        group = groups.create_group("Tell Circle", 5000, 3, {"id": "a", "name": "A"})
        request = service.request_to_join(
            group.id, {"id": "d", "name": "D", "email": "d@example.com"}
        )
        service.deny_request(group.id, request.id, "a", reason="Full soon")
        notifications.send.assert_called_once()
        assert notifications.send.call_args.kwargs["recipient"] == "d@example.com"
        assert "Full soon" in notifications.send.call_args.kwargs["message"]
