"""In-process repository manager.

Keeps provisioned paths in a set.  Used when ``GITFORGE_REPO_MANAGER_URL`` is
unset (local development) and as the collaborator in tests, where the call
log and failure injection make partial-failure scenarios reproducible.
"""

from __future__ import annotations

import anyio
from loguru import logger

from gitforge.project_service.repositories.base import ProvisioningError


class InMemoryRepositoryManager:
    """Set-backed implementation of the RepositoryManager protocol.

    Failures are injected per operation with :meth:`fail_next`; each injected
    failure is consumed by exactly one call.  ``delay`` makes every call sleep
    first, which lets tests exercise deadlines and cancellation.
    """

    def __init__(self, paths: set[str] | None = None, *, delay: float = 0.0) -> None:
        self.paths: set[str] = set(paths or ())
        self.calls: list[tuple[str, str]] = []
        self.delay = delay
        self._failures: dict[str, list[bool]] = {"create": [], "delete": [], "list": []}

    def fail_next(self, operation: str, *, times: int = 1, transient: bool = False) -> None:
        """Make the next *times* calls of *operation* raise ``ProvisioningError``."""
        self._failures[operation].extend([transient] * times)

    def count(self, operation: str, path: str | None = None) -> int:
        return sum(1 for op, p in self.calls if op == operation and (path is None or p == path))

    async def _enter(self, operation: str, path: str) -> None:
        self.calls.append((operation, path))
        if self.delay:
            await anyio.sleep(self.delay)
        pending = self._failures[operation]
        if pending:
            raise ProvisioningError(path, f"injected {operation} failure", transient=pending.pop(0))

    async def create(self, path: str) -> None:
        await self._enter("create", path)
        self.paths.add(path)
        logger.debug("Repository provisioned (in-memory): {}", path)

    async def delete(self, path: str) -> None:
        await self._enter("delete", path)
        self.paths.discard(path)
        logger.debug("Repository removed (in-memory): {}", path)

    async def list_paths(self) -> list[str]:
        await self._enter("list", "*")
        return sorted(self.paths)

    async def aclose(self) -> None:
        return None
