"""Administrator endpoints: voter whitelist, phase control, tally and resets."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.dependencies import get_admin_gateway
from app.schemas.voting import VoterCreate
from app.services.gateways import AdministrativeGateway

router = APIRouter()


@router.post("/voters")
def register_voter(
    payload: VoterCreate,
    gateway: AdministrativeGateway = Depends(get_admin_gateway),
) -> dict:
    """Whitelist one voter."""
    voter = gateway.register_voter(payload.identity)
    return {"voter": voter.model_dump()}


@router.get("/voters")
def list_voters(gateway: AdministrativeGateway = Depends(get_admin_gateway)) -> dict:
    """List registered voters in registration order."""
    return {"voters": [voter.model_dump() for voter in gateway.list_voters()]}


@router.post("/phase/proposals/start")
def start_proposals_registration(
    gateway: AdministrativeGateway = Depends(get_admin_gateway),
) -> dict:
    return {"workflow_status": gateway.start_proposals_registration()}


@router.post("/phase/proposals/end")
def end_proposals_registration(
    gateway: AdministrativeGateway = Depends(get_admin_gateway),
) -> dict:
    return {"workflow_status": gateway.end_proposals_registration()}


@router.post("/phase/voting/start")
def start_voting_session(gateway: AdministrativeGateway = Depends(get_admin_gateway)) -> dict:
    return {"workflow_status": gateway.start_voting_session()}


@router.post("/phase/voting/end")
def end_voting_session(gateway: AdministrativeGateway = Depends(get_admin_gateway)) -> dict:
    return {"workflow_status": gateway.end_voting_session()}


@router.post("/phase/tallied")
def votes_tallied(gateway: AdministrativeGateway = Depends(get_admin_gateway)) -> dict:
    """Close the election after the voting session ended."""
    return {"workflow_status": gateway.votes_tallied()}


@router.post("/tally")
def count_votes(gateway: AdministrativeGateway = Depends(get_admin_gateway)) -> dict:
    """Compute the winning proposal id (0 when nobody wins)."""
    return {"winning_proposal_id": gateway.count_votes()}


@router.post("/reset")
def reset_data(gateway: AdministrativeGateway = Depends(get_admin_gateway)) -> dict:
    """Clear proposals and ballots, keeping voters and the current phase."""
    gateway.reset_data()
    return {"success": True}


@router.post("/elections/new")
def start_new_election(gateway: AdministrativeGateway = Depends(get_admin_gateway)) -> dict:
    """Start a fresh election cycle from RegisteringVoters."""
    gateway.start_new_election()
    return {"success": True}
