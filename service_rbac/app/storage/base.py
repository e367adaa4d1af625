"""
Storage backend contract for roles and users.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..rules.models import Role, User


class StorageBackend(ABC):
    """Durable CRUD for Role and User records.

    Every operation may perform I/O. Backend-specific errors are not caught
    by the manager and reach the caller unchanged. Deletes never cascade.
    """
    
    @abstractmethod
    async def initialize(self) -> None:
        """Open connections or prepare schema."""
    
    @abstractmethod
    async def close(self) -> None:
        """Release connections."""
    
    @abstractmethod
    async def store_role(self, role: Role) -> None:
        """Insert or replace a role by id."""
    
    @abstractmethod
    async def get_role(self, role_id: str) -> Optional[Role]:
        """Return the role or None."""
    
    @abstractmethod
    async def delete_role(self, role_id: str) -> None:
        """Delete a role; no-op if absent."""
    
    @abstractmethod
    async def list_roles(self) -> List[Role]:
        """Return all roles."""
    
    @abstractmethod
    async def store_user(self, user: User) -> None:
        """Insert or replace a user by id."""
    
    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        """Return the user or None."""
    
    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        """Delete a user; no-op if absent."""
    
    @abstractmethod
    async def list_users(self) -> List[User]:
        """Return all users."""
