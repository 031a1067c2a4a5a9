"""
Identity -- the "current owner" seam supplied by the authentication layer.

Every service and selector is bound to exactly one owner id.  Nothing in the
kernel resolves sessions, tokens or users itself; an outer layer implements
``IdentityResolver`` and the orchestrator asks it once per operation.
"""

from abc import ABC, abstractmethod
from uuid import UUID


class IdentityResolver(ABC):
    """Resolves the landlord on whose behalf an operation runs."""

    @abstractmethod
    def current_owner(self) -> UUID:
        """Return the owner id for the active request."""
        ...


class FixedIdentity(IdentityResolver):
    """Resolver pinned to a single owner (scripts, sweeps, tests)."""

    def __init__(self, owner_id: UUID):
        self._owner_id = owner_id

    def current_owner(self) -> UUID:
        return self._owner_id
