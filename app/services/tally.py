"""Winner selection over the proposal collection."""

from __future__ import annotations

from collections.abc import Sequence

from app.schemas.voting import NO_WINNER, Proposal

FIRST_MAX = "first_max"
LEGACY_THRESHOLD = "legacy_threshold"
TALLY_POLICIES = frozenset({FIRST_MAX, LEGACY_THRESHOLD})


def tally_winner(proposals: Sequence[Proposal], policy: str = FIRST_MAX) -> int:
    """Return the winning proposal id, or ``NO_WINNER``.

    Proposals are scanned in registration order and a later proposal only
    replaces the leader with a strictly greater count, so ties go to the
    first proposal that reached the maximum.

    ``first_max`` seeds the running maximum with zero, so any proposal with at
    least one vote can win. ``legacy_threshold`` seeds it with one, which
    reproduces the historical tally where a proposal needs two or more votes.
    """
    if policy not in TALLY_POLICIES:
        raise ValueError(f"Unknown tally policy: {policy}")

    best_count = 1 if policy == LEGACY_THRESHOLD else 0
    winner_id = NO_WINNER
    for proposal in proposals:
        if proposal.vote_count > best_count:
            best_count = proposal.vote_count
            winner_id = proposal.proposal_id
    return winner_id
