"""
In-memory storage backend.
"""

import copy
from typing import Dict, List, Optional, TypeVar

from ..rules.models import Role, User
from .base import StorageBackend


Record = TypeVar("Record", Role, User)


def _copy_record(record: Record) -> Record:
    """Deep-copy a record, sharing predicate callables with the original.

    A function condition may be a bound method of a live policy object, so
    the callable is kept as-is instead of copying its owner.
    """
    memo = {}
    for permission in record.permissions:
        condition = getattr(permission, "condition", None)
        predicate = getattr(condition, "custom_function", None)
        if predicate is not None:
            memo[id(predicate)] = predicate
    return copy.deepcopy(record, memo)


class InMemoryStorage(StorageBackend):
    """Dict-backed reference backend.

    Records are copied on the way in and on the way out, so callers only
    change stored state through ``store_*`` like they would with a real
    database.
    """
    
    def __init__(self):
        self.roles: Dict[str, Role] = {}
        self.users: Dict[str, User] = {}
    
    async def initialize(self) -> None:
        pass
    
    async def close(self) -> None:
        pass
    
    async def store_role(self, role: Role) -> None:
        self.roles[role.id] = _copy_record(role)
    
    async def get_role(self, role_id: str) -> Optional[Role]:
        role = self.roles.get(role_id)
        return _copy_record(role) if role is not None else None
    
    async def delete_role(self, role_id: str) -> None:
        self.roles.pop(role_id, None)
    
    async def list_roles(self) -> List[Role]:
        return [_copy_record(role) for role in self.roles.values()]
    
    async def store_user(self, user: User) -> None:
        self.users[user.id] = _copy_record(user)
    
    async def get_user(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return _copy_record(user) if user is not None else None
    
    async def delete_user(self, user_id: str) -> None:
        self.users.pop(user_id, None)
    
    async def list_users(self) -> List[User]:
        return [_copy_record(user) for user in self.users.values()]
