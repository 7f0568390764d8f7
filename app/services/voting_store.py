"""Persistence backends for the election state."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field

from app.schemas.voting import ElectionSnapshot, Proposal, Voter, WorkflowEvent, WorkflowPhase
from app.services.common import SupabaseService
from app.utils.errors import InvalidInputError
from app.utils.time import parse_timestamp
from supabase import Client

STATE_ROW_ID = 1
logger = logging.getLogger(__name__)


class CommitPlan(BaseModel):
    """Row-level writes that turn one snapshot into the next."""

    state_row: dict[str, Any] | None = None
    voter_rows: list[dict[str, Any]] = Field(default_factory=list)
    deleted_voters: list[str] = Field(default_factory=list)
    proposal_rows: list[dict[str, Any]] = Field(default_factory=list)
    deleted_proposal_ids: list[int] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.state_row
            or self.voter_rows
            or self.deleted_voters
            or self.proposal_rows
            or self.deleted_proposal_ids
        )


def _state_row(snapshot: ElectionSnapshot) -> dict[str, Any]:
    return {
        "id": STATE_ROW_ID,
        "workflow_status": snapshot.workflow_status.value,
        "winning_proposal_id": snapshot.winning_proposal_id,
        "proposal_counter": snapshot.proposal_counter,
        "event_sequence": snapshot.event_sequence,
    }


def _voter_row(voter: Voter, position: int) -> dict[str, Any]:
    return {
        "identity": voter.identity,
        "position": position,
        "is_registered": voter.is_registered,
        "has_voted": voter.has_voted,
        "voted_proposal_id": voter.voted_proposal_id,
    }


def plan_commit(before: ElectionSnapshot, after: ElectionSnapshot) -> CommitPlan:
    """Diff two snapshots into the minimal set of row writes."""
    plan = CommitPlan()

    if _state_row(before) != _state_row(after):
        plan.state_row = _state_row(after)

    previous_positions = {identity: idx for idx, identity in enumerate(before.voter_order)}
    for position, identity in enumerate(after.voter_order):
        voter = after.voters[identity]
        if (
            before.voters.get(identity) != voter
            or previous_positions.get(identity) != position
        ):
            plan.voter_rows.append(_voter_row(voter, position))
    plan.deleted_voters = [
        identity for identity in before.voter_order if identity not in after.voters
    ]

    previous_proposals = {proposal.proposal_id: proposal for proposal in before.proposals}
    for proposal in after.proposals:
        if previous_proposals.get(proposal.proposal_id) != proposal:
            plan.proposal_rows.append(proposal.model_dump())
    current_ids = {proposal.proposal_id for proposal in after.proposals}
    plan.deleted_proposal_ids = [pid for pid in previous_proposals if pid not in current_ids]

    return plan


class VotingStore(ABC):
    """Load and persist the election snapshot and its event log."""

    @abstractmethod
    def load(self) -> ElectionSnapshot:
        """Return the persisted snapshot, or a fresh one when nothing is stored."""

    @abstractmethod
    def commit(
        self,
        before: ElectionSnapshot,
        after: ElectionSnapshot,
        events: Sequence[WorkflowEvent],
    ) -> None:
        """Persist ``after`` and append ``events``."""

    @abstractmethod
    def list_events(self, after: int = 0, limit: int = 100) -> list[WorkflowEvent]:
        """Return events with ``sequence > after`` in order."""


class InMemoryVotingStore(VotingStore):
    """Process-local store used for development runs and tests."""

    def __init__(self) -> None:
        self._snapshot = ElectionSnapshot()
        self._events: list[WorkflowEvent] = []
        self._lock = threading.Lock()

    def load(self) -> ElectionSnapshot:
        with self._lock:
            return self._snapshot.model_copy(deep=True)

    def commit(
        self,
        before: ElectionSnapshot,
        after: ElectionSnapshot,
        events: Sequence[WorkflowEvent],
    ) -> None:
        with self._lock:
            self._snapshot = after.model_copy(deep=True)
            self._events.extend(event.model_copy() for event in events)

    def list_events(self, after: int = 0, limit: int = 100) -> list[WorkflowEvent]:
        with self._lock:
            matching = [event for event in self._events if event.sequence > after]
        return matching[:limit]


class SupabaseVotingStore(VotingStore):
    """Store the election in Supabase tables.

    Tables: ``election_state`` (single row), ``voters``, ``proposals`` and
    ``voting_events``. Reads go through PostgREST; each commit is one
    ``commit_election`` call carrying only the rows that changed.
    """

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def load(self) -> ElectionSnapshot:
        state_rows = self.db.select_many("election_state", filters={"id": STATE_ROW_ID}, limit=1)
        if not state_rows:
            logger.info("No stored election state, starting fresh")
            return ElectionSnapshot()

        state = state_rows[0]
        voter_rows = self.db.select_many("voters", order_by="position")
        proposal_rows = self.db.select_many("proposals", order_by="proposal_id")

        voters = {
            str(row["identity"]): Voter(
                identity=str(row["identity"]),
                is_registered=bool(row["is_registered"]),
                has_voted=bool(row["has_voted"]),
                voted_proposal_id=int(row["voted_proposal_id"]),
            )
            for row in voter_rows
        }
        return ElectionSnapshot(
            workflow_status=WorkflowPhase(state["workflow_status"]),
            winning_proposal_id=int(state["winning_proposal_id"]),
            proposal_counter=int(state["proposal_counter"]),
            event_sequence=int(state["event_sequence"]),
            voters=voters,
            voter_order=[str(row["identity"]) for row in voter_rows],
            proposals=[
                Proposal(
                    proposal_id=int(row["proposal_id"]),
                    description=str(row["description"]),
                    vote_count=int(row["vote_count"]),
                )
                for row in proposal_rows
            ],
        )

    def commit(
        self,
        before: ElectionSnapshot,
        after: ElectionSnapshot,
        events: Sequence[WorkflowEvent],
    ) -> None:
        """Apply the row diff and append events in one database transaction.

        ``commit_election`` (see ``supabase/migrations``) runs every write
        inside a single Postgres function call, so either all of it lands or
        none of it does.
        """
        plan = plan_commit(before, after)
        if plan.is_empty and not events:
            return

        committed = self.db.execute(
            self.db.client.rpc(
                "commit_election",
                {
                    "p_state": plan.state_row,
                    "p_voters": plan.voter_rows,
                    "p_deleted_voters": plan.deleted_voters,
                    "p_proposals": plan.proposal_rows,
                    "p_deleted_proposal_ids": plan.deleted_proposal_ids,
                    "p_events": [
                        {
                            "sequence": event.sequence,
                            "name": event.name,
                            "payload": event.payload,
                            "created_at": event.created_at.isoformat(),
                        }
                        for event in events
                    ],
                },
            ),
            label="commit_election",
        )
        if committed is not True:
            raise InvalidInputError("Election commit was not applied")

    def list_events(self, after: int = 0, limit: int = 100) -> list[WorkflowEvent]:
        rows = self.db.execute(
            self.db.client.table("voting_events")
            .select("*")
            .gt("sequence", after)
            .order("sequence")
            .limit(limit),
            default=[],
            label="voting_events",
        )
        return [
            WorkflowEvent(
                sequence=int(row["sequence"]),
                name=str(row["name"]),
                payload=dict(row.get("payload") or {}),
                created_at=parse_timestamp(row["created_at"]),
            )
            for row in rows
        ]
