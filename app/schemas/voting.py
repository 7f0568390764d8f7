"""Voting workflow schemas and state records."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

NO_PROPOSAL = 0
NO_WINNER = 0


class WorkflowPhase(str, Enum):
    """Election lifecycle stages, in their required order."""

    REGISTERING_VOTERS = "RegisteringVoters"
    PROPOSALS_REGISTRATION_STARTED = "ProposalsRegistrationStarted"
    PROPOSALS_REGISTRATION_ENDED = "ProposalsRegistrationEnded"
    VOTING_SESSION_STARTED = "VotingSessionStarted"
    VOTING_SESSION_ENDED = "VotingSessionEnded"
    VOTES_TALLIED = "VotesTallied"


class Voter(BaseModel):
    """A whitelisted voter."""

    identity: str
    is_registered: bool = True
    has_voted: bool = False
    voted_proposal_id: int = NO_PROPOSAL


class Proposal(BaseModel):
    """A proposal submitted during the registration window."""

    proposal_id: int
    description: str
    vote_count: int = Field(default=0, ge=0)


class WorkflowEvent(BaseModel):
    """One entry of the append-only notification log."""

    sequence: int
    name: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class ElectionSnapshot(BaseModel):
    """Complete election state owned by the voting session."""

    workflow_status: WorkflowPhase = WorkflowPhase.REGISTERING_VOTERS
    winning_proposal_id: int = NO_WINNER
    proposal_counter: int = 0
    event_sequence: int = 0
    voters: dict[str, Voter] = Field(default_factory=dict)
    voter_order: list[str] = Field(default_factory=list)
    proposals: list[Proposal] = Field(default_factory=list)

    def find_proposal(self, proposal_id: int) -> Proposal | None:
        """Return the proposal with ``proposal_id`` if it is in the collection."""
        for proposal in self.proposals:
            if proposal.proposal_id == proposal_id:
                return proposal
        return None


class VoterCreate(BaseModel):
    """Request body for whitelisting a voter."""

    identity: str = Field(..., min_length=1)


class ProposalCreate(BaseModel):
    """Request body for submitting a proposal."""

    description: str = Field(..., min_length=1)


class VoteCreate(BaseModel):
    """Request body for casting a vote."""

    proposal_id: int


class WorkflowStatusResponse(BaseModel):
    """Current workflow phase."""

    workflow_status: WorkflowPhase


class WinnerResponse(BaseModel):
    """Tally outcome; ``winning_proposal_id`` is 0 when there is no winner."""

    winning_proposal_id: int
    has_winner: bool
