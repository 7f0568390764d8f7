"""Service package exports with lazy loading."""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS = {
    "AdministrativeGateway": "app.services.gateways",
    "InMemoryVotingStore": "app.services.voting_store",
    "SupabaseService": "app.services.common",
    "SupabaseVotingStore": "app.services.voting_store",
    "VoterGateway": "app.services.gateways",
    "VotingSession": "app.services.voting_session",
    "VotingStore": "app.services.voting_store",
    "tally_winner": "app.services.tally",
}

__all__ = sorted(_EXPORTS.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(_EXPORTS[name])
    return getattr(module, name)
