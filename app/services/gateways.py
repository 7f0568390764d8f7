"""Role-checked entry points into the voting session."""

from __future__ import annotations

import logging
from collections.abc import Callable

from app.schemas.voting import Proposal, Voter, WorkflowPhase
from app.services.voting_session import VotingSession
from app.utils.errors import ForbiddenError

logger = logging.getLogger(__name__)


class AdministrativeGateway:
    """Admin-only operations.

    Whether a principal is the administrator is decided by ``is_admin``,
    supplied by the deployment (configured ids, token claims, ...).
    """

    def __init__(
        self,
        session: VotingSession,
        principal: str,
        is_admin: Callable[[str], bool],
    ) -> None:
        self.session = session
        self.principal = principal
        self._is_admin = is_admin

    def _ensure_admin(self, action: str) -> None:
        if not self._is_admin(self.principal):
            logger.warning("Rejected %s by non-admin %s", action, self.principal)
            raise ForbiddenError(f"Only the administrator can {action}")

    def register_voter(self, identity: str) -> Voter:
        self._ensure_admin("register voters")
        return self.session.register_voter(identity)

    def list_voters(self) -> list[Voter]:
        self._ensure_admin("list voters")
        return self.session.get_voters()

    def start_proposals_registration(self) -> WorkflowPhase:
        self._ensure_admin("start proposals registration")
        return self.session.start_proposals_registration()

    def end_proposals_registration(self) -> WorkflowPhase:
        self._ensure_admin("end proposals registration")
        return self.session.end_proposals_registration()

    def start_voting_session(self) -> WorkflowPhase:
        self._ensure_admin("start the voting session")
        return self.session.start_voting_session()

    def end_voting_session(self) -> WorkflowPhase:
        self._ensure_admin("end the voting session")
        return self.session.end_voting_session()

    def votes_tallied(self) -> WorkflowPhase:
        self._ensure_admin("close the tally")
        return self.session.votes_tallied()

    def count_votes(self) -> int:
        self._ensure_admin("count votes")
        return self.session.count_votes()

    def reset_data(self) -> None:
        self._ensure_admin("reset election data")
        self.session.reset_data()

    def start_new_election(self) -> None:
        self._ensure_admin("start a new election")
        self.session.start_new_election()


class VoterGateway:
    """Voter operations; registration is checked by the session itself."""

    def __init__(
        self,
        session: VotingSession,
        principal: str,
        is_admin: Callable[[str], bool],
    ) -> None:
        self.session = session
        self.principal = principal
        self._is_admin = is_admin

    def register_proposal(self, description: str) -> Proposal:
        return self.session.register_proposal(self.principal, description)

    def vote(self, proposal_id: int) -> Proposal:
        return self.session.vote(self.principal, proposal_id)

    def get_voter(self, identity: str) -> Voter:
        """Look up a voter record; visible to registered voters and the admin."""
        if not self._is_admin(self.principal) and not self.session.is_registered(self.principal):
            raise ForbiddenError("Only registered voters can view voter records")
        return self.session.get_voter(identity)
