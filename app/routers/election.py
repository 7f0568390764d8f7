"""Voter actions and public election queries."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_voter_gateway, get_voting_session
from app.schemas.voting import (
    NO_WINNER,
    ProposalCreate,
    VoteCreate,
    WinnerResponse,
    WorkflowStatusResponse,
)
from app.services.gateways import VoterGateway
from app.services.voting_session import VotingSession

router = APIRouter()


@router.post("/proposals")
def register_proposal(
    payload: ProposalCreate,
    gateway: VoterGateway = Depends(get_voter_gateway),
) -> dict:
    """Submit a proposal while proposal registration is open."""
    proposal = gateway.register_proposal(payload.description)
    return {"proposal": proposal.model_dump()}


@router.post("/votes")
def vote(
    payload: VoteCreate,
    gateway: VoterGateway = Depends(get_voter_gateway),
) -> dict:
    """Cast the caller's single vote."""
    proposal = gateway.vote(payload.proposal_id)
    return {"proposal": proposal.model_dump()}


@router.get("/voters/{identity}")
def get_voter(identity: str, gateway: VoterGateway = Depends(get_voter_gateway)) -> dict:
    return {"voter": gateway.get_voter(identity).model_dump()}


@router.get("/winner", response_model=WinnerResponse)
def get_winner(session: VotingSession = Depends(get_voting_session)) -> dict:
    winner_id = session.get_winner()
    return {"winning_proposal_id": winner_id, "has_winner": winner_id != NO_WINNER}


@router.get("/status", response_model=WorkflowStatusResponse)
def get_workflow_status(session: VotingSession = Depends(get_voting_session)) -> dict:
    return {"workflow_status": session.get_workflow_status()}


@router.get("/proposals")
def get_proposal_list(session: VotingSession = Depends(get_voting_session)) -> dict:
    return {"proposals": [proposal.model_dump() for proposal in session.get_proposal_list()]}


@router.get("/proposals/{proposal_id}")
def get_proposal(
    proposal_id: int,
    session: VotingSession = Depends(get_voting_session),
) -> dict:
    return {"proposal": session.get_proposal(proposal_id).model_dump()}


@router.get("/events")
def get_events(
    after: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    session: VotingSession = Depends(get_voting_session),
) -> dict:
    """Return notifications with a sequence greater than ``after``."""
    events = session.get_events(after=after, limit=limit)
    return {"events": [event.model_dump(mode="json") for event in events]}
