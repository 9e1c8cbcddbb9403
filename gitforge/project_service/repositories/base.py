"""Repository manager interface.

The repository manager is a remote service that owns the actual git storage.
Projects address their repository by ``path = project_id``.  The project
service only ever provisions, removes and (for reconciliation) enumerates
paths; everything else about the repository is opaque.

Both ``create`` and ``delete`` are idempotent by contract: provisioning a path
that already exists, or removing one that does not, succeeds silently.  The
coordinator relies on this to make retries and compensations safe.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class ProvisioningError(RuntimeError):
    """Raised when a repository manager call fails.

    ``transient`` is set for failures whose outcome on the remote side is
    unknown or likely to clear on retry (timeouts, connection errors, 5xx).
    """

    def __init__(self, path: str, reason: str, *, transient: bool = False) -> None:
        super().__init__(f"Repository '{path}': {reason}")
        self.path = path
        self.reason = reason
        self.transient = transient


@runtime_checkable
class RepositoryManager(Protocol):
    """Async protocol for the remote repository manager.

    Implementations must not retry internally; failures are returned to the
    caller as ``ProvisioningError``.
    """

    async def create(self, path: str) -> None:
        """Provision a repository at *path*.  No-op if it already exists."""
        ...

    async def delete(self, path: str) -> None:
        """Remove the repository at *path*.  No-op if it does not exist."""
        ...

    async def list_paths(self) -> list[str]:
        """Return every provisioned path.  Used by reconciliation only."""
        ...

    async def aclose(self) -> None:
        """Release any underlying connections."""
        ...
