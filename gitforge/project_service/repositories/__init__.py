"""Repository manager clients."""

from gitforge.project_service.repositories.base import ProvisioningError, RepositoryManager
from gitforge.project_service.repositories.http import HttpRepositoryManager
from gitforge.project_service.repositories.memory import InMemoryRepositoryManager

__all__ = ["HttpRepositoryManager", "InMemoryRepositoryManager", "ProvisioningError", "RepositoryManager"]
