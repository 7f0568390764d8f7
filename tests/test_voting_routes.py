"""HTTP route tests for the election workflow."""

from __future__ import annotations

from fastapi.testclient import TestClient

ADMIN = {"X-Test-User": "admin-1"}
ALICE = {"X-Test-User": "alice"}
BOB = {"X-Test-User": "bob"}


def _open_voting(api: TestClient) -> int:
    for identity in ("alice", "bob"):
        response = api.post("/admin/voters", json={"identity": identity}, headers=ADMIN)
        assert response.status_code == 200
    api.post("/admin/phase/proposals/start", headers=ADMIN)
    response = api.post("/election/proposals", json={"description": "Build a park"}, headers=ALICE)
    assert response.status_code == 200
    api.post("/admin/phase/proposals/end", headers=ADMIN)
    api.post("/admin/phase/voting/start", headers=ADMIN)
    return response.json()["proposal"]["proposal_id"]


def test_full_election_flow(api: TestClient) -> None:
    """Votes are recorded and the winner is exposed after tallying."""
    proposal_id = _open_voting(api)

    for caller in (ALICE, BOB):
        response = api.post("/election/votes", json={"proposal_id": proposal_id}, headers=caller)
        assert response.status_code == 200
    assert response.json()["proposal"]["vote_count"] == 2

    api.post("/admin/phase/voting/end", headers=ADMIN)
    assert api.post("/admin/tally", headers=ADMIN).json() == {"winning_proposal_id": proposal_id}
    assert api.post("/admin/phase/tallied", headers=ADMIN).json() == {
        "workflow_status": "VotesTallied"
    }

    assert api.get("/election/winner").json() == {
        "winning_proposal_id": proposal_id,
        "has_winner": True,
    }
    assert api.get("/election/status").json() == {"workflow_status": "VotesTallied"}


def test_second_vote_returns_conflict(api: TestClient) -> None:
    proposal_id = _open_voting(api)
    api.post("/election/votes", json={"proposal_id": proposal_id}, headers=ALICE)

    response = api.post("/election/votes", json={"proposal_id": proposal_id}, headers=ALICE)

    assert response.status_code == 409
    assert response.json()["code"] == "ALREADY_VOTED"


def test_out_of_order_transition_returns_conflict(api: TestClient) -> None:
    response = api.post("/admin/phase/voting/start", headers=ADMIN)
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_PHASE_TRANSITION"
    assert api.get("/election/status").json() == {"workflow_status": "RegisteringVoters"}


def test_proposal_outside_window_returns_phase_error(api: TestClient) -> None:
    response = api.post("/election/proposals", json={"description": "Early"}, headers=ALICE)
    assert response.status_code == 409
    assert response.json()["code"] == "PHASE_NOT_OPEN"


def test_unknown_proposal_returns_not_found(api: TestClient) -> None:
    _open_voting(api)
    response = api.post("/election/votes", json={"proposal_id": 42}, headers=ALICE)
    assert response.status_code == 404
    assert response.json()["code"] == "INVALID_PROPOSAL_ID"
    assert api.get("/election/proposals/42").status_code == 404


def test_unregistered_caller_cannot_vote(api: TestClient) -> None:
    proposal_id = _open_voting(api)
    response = api.post(
        "/election/votes",
        json={"proposal_id": proposal_id},
        headers={"X-Test-User": "mallory"},
    )
    assert response.status_code == 403
    assert response.json()["code"] == "NOT_REGISTERED"


def test_admin_routes_require_admin(api: TestClient) -> None:
    response = api.post("/admin/voters", json={"identity": "mallory"}, headers=ALICE)
    assert response.status_code == 403
    assert response.json() == {
        "error": "Only the administrator can register voters",
        "code": "FORBIDDEN",
    }


def test_missing_credentials_are_rejected(api: TestClient) -> None:
    response = api.post("/admin/reset")
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


def test_duplicate_voter_returns_conflict(api: TestClient) -> None:
    api.post("/admin/voters", json={"identity": "alice"}, headers=ADMIN)
    response = api.post("/admin/voters", json={"identity": "alice"}, headers=ADMIN)
    assert response.status_code == 409
    assert response.json()["code"] == "ALREADY_REGISTERED"
    voters = api.get("/admin/voters", headers=ADMIN).json()["voters"]
    assert [voter["identity"] for voter in voters] == ["alice"]


def test_invalid_payload_is_normalized(api: TestClient) -> None:
    response = api.post("/admin/voters", json={}, headers=ADMIN)
    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_INPUT"


def test_reset_clears_proposals(api: TestClient) -> None:
    proposal_id = _open_voting(api)
    api.post("/election/votes", json={"proposal_id": proposal_id}, headers=ALICE)

    assert api.post("/admin/reset", headers=ADMIN).json() == {"success": True}

    assert api.get("/election/proposals").json() == {"proposals": []}
    voter = api.get("/election/voters/alice", headers=BOB).json()["voter"]
    assert voter["has_voted"] is False
    assert api.get("/election/status").json() == {"workflow_status": "VotingSessionStarted"}


def test_events_endpoint_lists_notifications(api: TestClient) -> None:
    api.post("/admin/voters", json={"identity": "alice"}, headers=ADMIN)
    api.post("/admin/phase/proposals/start", headers=ADMIN)

    events = api.get("/election/events").json()["events"]

    assert [event["name"] for event in events] == ["VoterRegistered", "WorkflowStatusChange"]
    assert api.get("/election/events", params={"after": 1}).json()["events"][0]["sequence"] == 2
