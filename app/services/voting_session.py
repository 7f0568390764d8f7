"""Election workflow state machine: voters, proposals, votes and tally."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, TypeVar

from app.schemas.voting import (
    NO_PROPOSAL,
    NO_WINNER,
    ElectionSnapshot,
    Proposal,
    Voter,
    WorkflowEvent,
    WorkflowPhase,
)
from app.services.tally import FIRST_MAX, TALLY_POLICIES, tally_winner
from app.services.voting_store import VotingStore
from app.utils.errors import (
    AlreadyRegisteredError,
    AlreadyVotedError,
    InvalidInputError,
    InvalidPhaseTransitionError,
    InvalidProposalIdError,
    NotRegisteredError,
    PhaseNotOpenError,
)
from app.utils.time import now_utc

T = TypeVar("T")
logger = logging.getLogger(__name__)


class _Transaction:
    """Working copy of the snapshot plus the events it will publish."""

    def __init__(self, draft: ElectionSnapshot) -> None:
        self.draft = draft
        self.events: list[WorkflowEvent] = []

    def emit(self, name: str, **payload: Any) -> None:
        self.draft.event_sequence += 1
        self.events.append(
            WorkflowEvent(
                sequence=self.draft.event_sequence,
                name=name,
                payload=payload,
                created_at=now_utc(),
            )
        )


class VotingSession:
    """Own the election state and enforce every workflow rule.

    Mutations run one at a time under a single lock. Each one works on a deep
    copy of the current snapshot; the copy replaces the cached state only
    after the store commit succeeds, so a rejected call never leaves a
    partial change behind. Callers reach the session through the gateways,
    which decide who counts as the administrator.
    """

    def __init__(self, store: VotingStore, tally_policy: str = FIRST_MAX) -> None:
        if tally_policy not in TALLY_POLICIES:
            raise ValueError(f"Unknown tally policy: {tally_policy}")
        self.store = store
        self.tally_policy = tally_policy
        self._lock = threading.Lock()
        self._state: ElectionSnapshot | None = None

    def _current(self) -> ElectionSnapshot:
        if self._state is None:
            self._state = self.store.load()
        return self._state

    def _transact(self, apply: Callable[[_Transaction], T]) -> T:
        with self._lock:
            current = self._current()
            txn = _Transaction(current.model_copy(deep=True))
            result = apply(txn)
            try:
                self.store.commit(current, txn.draft, txn.events)
            except Exception:
                # Commit is all-or-nothing; reload the last committed state.
                self._state = None
                raise
            self._state = txn.draft

        for event in txn.events:
            logger.info("Event #%s %s %s", event.sequence, event.name, event.payload)
        return result

    def _read(self, reader: Callable[[ElectionSnapshot], T]) -> T:
        with self._lock:
            return reader(self._current())

    # -- voters -----------------------------------------------------------

    def register_voter(self, identity: str) -> Voter:
        """Whitelist ``identity``; only allowed while registering voters."""
        identity = identity.strip()
        if not identity:
            raise InvalidInputError("Voter identity is required")

        def apply(txn: _Transaction) -> Voter:
            state = txn.draft
            if state.workflow_status != WorkflowPhase.REGISTERING_VOTERS:
                raise PhaseNotOpenError("register voters", state.workflow_status.value)
            if identity in state.voters:
                raise AlreadyRegisteredError(identity)

            voter = Voter(identity=identity)
            state.voters[identity] = voter
            state.voter_order.append(identity)
            txn.emit("VoterRegistered", identity=identity)
            return voter.model_copy()

        return self._transact(apply)

    # -- phase transitions ------------------------------------------------

    def _advance(self, expected: WorkflowPhase, target: WorkflowPhase) -> WorkflowPhase:
        def apply(txn: _Transaction) -> WorkflowPhase:
            state = txn.draft
            previous = state.workflow_status
            if previous != expected:
                raise InvalidPhaseTransitionError(previous.value, target.value)
            state.workflow_status = target
            txn.emit(
                "WorkflowStatusChange",
                previous_status=previous.value,
                new_status=target.value,
            )
            return target

        return self._transact(apply)

    def start_proposals_registration(self) -> WorkflowPhase:
        return self._advance(
            WorkflowPhase.REGISTERING_VOTERS,
            WorkflowPhase.PROPOSALS_REGISTRATION_STARTED,
        )

    def end_proposals_registration(self) -> WorkflowPhase:
        return self._advance(
            WorkflowPhase.PROPOSALS_REGISTRATION_STARTED,
            WorkflowPhase.PROPOSALS_REGISTRATION_ENDED,
        )

    def start_voting_session(self) -> WorkflowPhase:
        return self._advance(
            WorkflowPhase.PROPOSALS_REGISTRATION_ENDED,
            WorkflowPhase.VOTING_SESSION_STARTED,
        )

    def end_voting_session(self) -> WorkflowPhase:
        return self._advance(
            WorkflowPhase.VOTING_SESSION_STARTED,
            WorkflowPhase.VOTING_SESSION_ENDED,
        )

    def votes_tallied(self) -> WorkflowPhase:
        """Close the election; the winner stays whatever ``count_votes`` stored."""
        return self._advance(
            WorkflowPhase.VOTING_SESSION_ENDED,
            WorkflowPhase.VOTES_TALLIED,
        )

    # -- proposals and votes ----------------------------------------------

    def register_proposal(self, identity: str, description: str) -> Proposal:
        """Add a proposal from a registered voter while submissions are open."""

        def apply(txn: _Transaction) -> Proposal:
            state = txn.draft
            if state.workflow_status != WorkflowPhase.PROPOSALS_REGISTRATION_STARTED:
                raise PhaseNotOpenError("register proposals", state.workflow_status.value)
            if identity not in state.voters:
                raise NotRegisteredError(identity)
            text = description.strip()
            if not text:
                raise InvalidInputError("Proposal description is required")

            state.proposal_counter += 1
            proposal = Proposal(proposal_id=state.proposal_counter, description=text)
            state.proposals.append(proposal)
            txn.emit("ProposalRegistered", proposal_id=proposal.proposal_id)
            return proposal.model_copy()

        return self._transact(apply)

    def vote(self, identity: str, proposal_id: int) -> Proposal:
        """Record one vote for ``proposal_id`` and return the updated proposal."""

        def apply(txn: _Transaction) -> Proposal:
            state = txn.draft
            if state.workflow_status != WorkflowPhase.VOTING_SESSION_STARTED:
                raise PhaseNotOpenError("vote", state.workflow_status.value)
            voter = state.voters.get(identity)
            if voter is None:
                raise NotRegisteredError(identity)
            if voter.has_voted:
                raise AlreadyVotedError()
            proposal = state.find_proposal(proposal_id)
            if proposal is None:
                raise InvalidProposalIdError(proposal_id)

            proposal.vote_count += 1
            voter.has_voted = True
            voter.voted_proposal_id = proposal_id
            txn.emit("Voted", identity=identity, proposal_id=proposal_id)
            return proposal.model_copy()

        return self._transact(apply)

    # -- tally and resets -------------------------------------------------

    def count_votes(self) -> int:
        """Compute and store the winning proposal id (``NO_WINNER`` if none)."""

        def apply(txn: _Transaction) -> int:
            state = txn.draft
            state.winning_proposal_id = tally_winner(state.proposals, self.tally_policy)
            txn.emit("VotesCounted", winning_proposal_id=state.winning_proposal_id)
            return state.winning_proposal_id

        return self._transact(apply)

    def reset_data(self) -> None:
        """Clear ballots for a re-vote without leaving the current phase.

        Proposals are dropped (ids keep counting up) and every voter may vote
        again. Registrations, the phase and the last winner are untouched.
        """

        def apply(txn: _Transaction) -> None:
            state = txn.draft
            cleared = len(state.proposals)
            state.proposals = []
            for voter in state.voters.values():
                voter.has_voted = False
                voter.voted_proposal_id = NO_PROPOSAL
            txn.emit("DataReset", proposals_cleared=cleared)

        self._transact(apply)

    def start_new_election(self) -> None:
        """Start over from RegisteringVoters with no voters or proposals."""

        def apply(txn: _Transaction) -> None:
            state = txn.draft
            previous = state.workflow_status
            state.workflow_status = WorkflowPhase.REGISTERING_VOTERS
            state.winning_proposal_id = NO_WINNER
            state.proposals = []
            state.voters = {}
            state.voter_order = []
            txn.emit("ElectionRestarted", previous_status=previous.value)

        self._transact(apply)

    # -- queries ----------------------------------------------------------

    def get_winner(self) -> int:
        return self._read(lambda state: state.winning_proposal_id)

    def get_workflow_status(self) -> WorkflowPhase:
        return self._read(lambda state: state.workflow_status)

    def get_proposal_list(self) -> list[Proposal]:
        return self._read(lambda state: [p.model_copy() for p in state.proposals])

    def get_proposal(self, proposal_id: int) -> Proposal:
        def reader(state: ElectionSnapshot) -> Proposal:
            proposal = state.find_proposal(proposal_id)
            if proposal is None:
                raise InvalidProposalIdError(proposal_id)
            return proposal.model_copy()

        return self._read(reader)

    def is_registered(self, identity: str) -> bool:
        return self._read(lambda state: identity in state.voters)

    def get_voter(self, identity: str) -> Voter:
        def reader(state: ElectionSnapshot) -> Voter:
            voter = state.voters.get(identity)
            if voter is None:
                raise NotRegisteredError(identity)
            return voter.model_copy()

        return self._read(reader)

    def get_voters(self) -> list[Voter]:
        """Return voters in registration order."""
        return self._read(
            lambda state: [state.voters[identity].model_copy() for identity in state.voter_order]
        )

    def get_events(self, after: int = 0, limit: int = 100) -> list[WorkflowEvent]:
        return self.store.list_events(after=after, limit=limit)
