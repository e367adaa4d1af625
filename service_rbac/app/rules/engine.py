"""
Permission matching and role hierarchy resolution for the RBAC engine.
"""

from typing import Iterable, List, Optional, Tuple

from shared.errors import RoleHierarchyError
from shared.logging import get_logger
from ..storage.base import StorageBackend
from .conditions import evaluate_condition
from .models import EvaluationContext, Permission


def permission_matches(permission: Permission, action: str, resource_type: str) -> bool:
    """Exact match on action and resource type. No wildcards."""
    return permission.action == action and permission.resource_type == resource_type


def find_applicable_permission(
    permissions: Iterable[Permission],
    action: str,
    resource_type: str,
    context: EvaluationContext
) -> Optional[Permission]:
    """Return the first permission that matches and whose condition holds.

    List order is significant: the scan stops at the first hit, so earlier
    grants take priority over later ones.
    """
    for permission in permissions:
        if not permission_matches(permission, action, resource_type):
            continue
        if permission.condition is None or evaluate_condition(permission.condition, context):
            return permission
    return None


class RoleHierarchyResolver:
    """Expands roles into their own and inherited permissions."""

    def __init__(self, storage: StorageBackend, enforce_hierarchy: bool = True):
        self.storage = storage
        self.enforce_hierarchy = enforce_hierarchy
        self.logger = get_logger("rbac.hierarchy")

    async def resolve_permissions(self, role_id: str) -> List[Permission]:
        """Own permissions first, then each parent's, depth-first, duplicates kept."""
        return await self._resolve(role_id, ())

    async def resolve_many(self, role_ids: Iterable[str]) -> List[Permission]:
        """Concatenate resolved permissions for several roles, in order."""
        permissions: List[Permission] = []
        for role_id in role_ids:
            permissions.extend(await self.resolve_permissions(role_id))
        return permissions

    async def _resolve(self, role_id: str, ancestors: Tuple[str, ...]) -> List[Permission]:
        if role_id in ancestors:
            path = list(ancestors) + [role_id]
            self.logger.error("Circular role inheritance", path=path)
            raise RoleHierarchyError(
                f"Circular role inheritance: {' -> '.join(path)}",
                {"role_id": role_id, "path": path}
            )

        role = await self.storage.get_role(role_id)
        if role is None:
            return []

        permissions = list(role.permissions)

        if self.enforce_hierarchy and role.parent_roles:
            # Only the current branch counts; diamonds resolve twice.
            branch = ancestors + (role_id,)
            for parent_id in role.parent_roles:
                permissions.extend(await self._resolve(parent_id, branch))

        return permissions
