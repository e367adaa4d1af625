"""
RBAC manager for the 254Carbon Access Layer.

The manager is the public entry point of the engine. It owns the storage
and cache lifecycle, validates role and user records before writing them,
and answers point decisions:

1. direct permissions on the user are scanned first, in list order;
2. permissions of the user's roles (parents included when hierarchical
   roles are enforced) are scanned next;
3. the first permission that matches and whose condition holds allows the
   action. Nothing matching means a denial.

An unknown user is a denial, not an error. Storage errors propagate.
"""

import dataclasses
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from shared.errors import ValidationError
from shared.logging import get_logger
from .cache.decision_cache import DecisionCache, InMemoryDecisionCache, build_decision_key
from .cache.redis_cache import RedisDecisionCache
from .config import RBACConfig
from .rules.engine import RoleHierarchyResolver, find_applicable_permission
from .rules.models import (
    Action, EvaluationContext, Permission, PermissionCheck,
    PermissionCheckResult, Resource, Role, User
)
from .storage.base import StorageBackend
from .storage.memory import InMemoryStorage


class RBACManager:
    """Role and user management plus permission decisions."""

    def __init__(
        self,
        config: Optional[RBACConfig] = None,
        storage: Optional[StorageBackend] = None,
        cache: Optional[DecisionCache] = None
    ):
        self.config = config or RBACConfig()
        self.logger = get_logger("rbac.manager")
        self.storage = storage or InMemoryStorage()
        self.cache: Optional[DecisionCache] = None
        if self.config.cache_permissions:
            self.cache = cache or self._build_cache()
        self.resolver = RoleHierarchyResolver(self.storage, self.config.enforce_hierarchical_roles)
        self.initialized = False
        # Bumped on every invalidation; decisions computed across a bump are not cached
        self._cache_generation = 0

    def _build_cache(self) -> DecisionCache:
        if self.config.cache_backend == "redis":
            return RedisDecisionCache(self.config.redis_url, self.config.cache_ttl_seconds)
        return InMemoryDecisionCache()

    # -- Lifecycle --------------------------------------------------------------

    async def initialize(self) -> None:
        """Initialize the storage backend and decision cache."""
        if self.initialized:
            return
        await self.storage.initialize()
        if self.cache is not None:
            await self.cache.start()
        self.initialized = True
        self.logger.info(
            "RBAC manager initialized",
            storage=type(self.storage).__name__,
            cache=type(self.cache).__name__ if self.cache else None,
            hierarchical_roles=self.config.enforce_hierarchical_roles
        )

    async def close(self) -> None:
        """Close the storage backend and decision cache."""
        await self.storage.close()
        if self.cache is not None:
            await self.cache.stop()
        self.initialized = False
        self.logger.info("RBAC manager closed")

    async def __aenter__(self) -> "RBACManager":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _ensure_initialized(self) -> None:
        if not self.initialized:
            await self.initialize()

    async def _invalidate_cache(self) -> None:
        self._cache_generation += 1
        if self.cache is not None:
            await self.cache.clear()

    # -- Roles ------------------------------------------------------------------

    async def add_role(self, role: Union[Role, Mapping[str, Any]]) -> None:
        """Add or replace a role."""
        await self._ensure_initialized()

        if isinstance(role, Mapping):
            role = Role.from_dict(role)

        if not role.id:
            raise ValidationError("Role must have an id", {"field": "id"})
        if not role.name:
            raise ValidationError("Role must have a name", {"field": "name", "role_id": role.id})
        if not isinstance(role.permissions, list):
            raise ValidationError("Role permissions must be a list", {"field": "permissions", "role_id": role.id})
        if not isinstance(role.parent_roles, list):
            raise ValidationError("Role parent_roles must be a list", {"field": "parent_roles", "role_id": role.id})

        role = dataclasses.replace(role, permissions=[Permission.from_dict(p) for p in role.permissions])

        await self.storage.store_role(role)
        await self._invalidate_cache()
        self.logger.info("Role stored", role_id=role.id, name=role.name, permissions=len(role.permissions))

    async def remove_role(self, role_id: str) -> None:
        """Remove a role. Users still listing it are left untouched."""
        await self._ensure_initialized()
        await self.storage.delete_role(role_id)
        await self._invalidate_cache()
        self.logger.info("Role removed", role_id=role_id)

    async def get_role(self, role_id: str) -> Optional[Role]:
        """Get a role by ID."""
        await self._ensure_initialized()
        return await self.storage.get_role(role_id)

    async def list_roles(self) -> List[Role]:
        await self._ensure_initialized()
        return await self.storage.list_roles()

    async def get_role_count(self) -> int:
        await self._ensure_initialized()
        return len(await self.storage.list_roles())

    # -- Users ------------------------------------------------------------------

    async def add_user(self, user: Union[User, Mapping[str, Any]]) -> None:
        """Add or replace a user."""
        await self._ensure_initialized()

        if isinstance(user, Mapping):
            user = User.from_dict(user)

        if not user.id:
            raise ValidationError("User must have an id", {"field": "id"})
        if not isinstance(user.roles, list):
            raise ValidationError("User roles must be a list", {"field": "roles", "user_id": user.id})
        if not isinstance(user.permissions, list):
            raise ValidationError("User permissions must be a list", {"field": "permissions", "user_id": user.id})

        user = dataclasses.replace(user, permissions=[Permission.from_dict(p) for p in user.permissions])
        await self.storage.store_user(user)
        await self._invalidate_cache()
        self.logger.info("User stored", user_id=user.id, roles=user.roles)

    async def update_user(self, user_id: str, patch: Mapping[str, Any]) -> None:
        """Shallow-merge ``patch`` into an existing user.

        ``roles`` and ``permissions`` replace the typed fields; every other key
        is merged into the user's attributes.
        """
        await self._ensure_initialized()

        existing = await self.storage.get_user(user_id)
        if existing is None:
            raise ValidationError(f"User with id {user_id} does not exist", {"user_id": user_id})

        if "id" in patch and patch["id"] != user_id:
            raise ValidationError("User id cannot be changed", {"field": "id", "user_id": user_id})
        if "roles" in patch and not isinstance(patch["roles"], list):
            raise ValidationError("User roles must be a list", {"field": "roles", "user_id": user_id})
        if "permissions" in patch and not isinstance(patch["permissions"], list):
            raise ValidationError("User permissions must be a list", {"field": "permissions", "user_id": user_id})
        if "attributes" in patch and not isinstance(patch["attributes"], Mapping):
            raise ValidationError("User attributes must be a mapping", {"field": "attributes", "user_id": user_id})

        changes: Dict[str, Any] = {}
        if "roles" in patch:
            changes["roles"] = list(patch["roles"])
        if "permissions" in patch:
            changes["permissions"] = [Permission.from_dict(p) for p in patch["permissions"]]

        attributes = dict(existing.attributes)
        attributes.update(patch.get("attributes") or {})
        attributes.update(
            (key, value) for key, value in patch.items()
            if key not in User.CORE_FIELDS and key != "attributes"
        )
        changes["attributes"] = attributes

        await self.storage.store_user(dataclasses.replace(existing, **changes))
        await self._invalidate_cache()
        self.logger.info("User updated", user_id=user_id, fields=sorted(patch))

    async def remove_user(self, user_id: str) -> None:
        await self._ensure_initialized()
        await self.storage.delete_user(user_id)
        await self._invalidate_cache()
        self.logger.info("User removed", user_id=user_id)

    async def get_user(self, user_id: str) -> Optional[User]:
        """Get a user by ID."""
        await self._ensure_initialized()
        return await self.storage.get_user(user_id)

    async def list_users(self) -> List[User]:
        await self._ensure_initialized()
        return await self.storage.list_users()

    async def get_user_count(self) -> int:
        await self._ensure_initialized()
        return len(await self.storage.list_users())

    # -- Role assignment --------------------------------------------------------

    async def assign_role_to_user(self, user_id: str, role_id: str) -> None:
        """Assign a role to a user. Assigning a held role is a no-op."""
        await self._ensure_initialized()

        user = await self.storage.get_user(user_id)
        if user is None:
            raise ValidationError(f"User with id {user_id} does not exist", {"user_id": user_id})

        role = await self.storage.get_role(role_id)
        if role is None:
            raise ValidationError(f"Role with id {role_id} does not exist", {"role_id": role_id})

        if role_id in user.roles:
            return

        user.roles.append(role_id)
        await self.storage.store_user(user)
        await self._invalidate_cache()
        self.logger.info("Role assigned", user_id=user_id, role_id=role_id)

    async def revoke_role_from_user(self, user_id: str, role_id: str) -> None:
        """Revoke a role from a user. Revoking a role that is not held is a no-op."""
        await self._ensure_initialized()

        user = await self.storage.get_user(user_id)
        if user is None:
            raise ValidationError(f"User with id {user_id} does not exist", {"user_id": user_id})

        if role_id not in user.roles:
            return

        user.roles.remove(role_id)
        await self.storage.store_user(user)
        await self._invalidate_cache()
        self.logger.info("Role revoked", user_id=user_id, role_id=role_id)

    # -- Decisions --------------------------------------------------------------

    async def can(
        self,
        user_id: str,
        action: Union[str, Action, Mapping[str, Any]],
        resource: Union[str, Resource, Mapping[str, Any]],
        context: Optional[Mapping[str, Any]] = None
    ) -> PermissionCheckResult:
        """Decide whether ``user_id`` may perform ``action`` on ``resource``.

        Bare strings are accepted for both: a resource string becomes a
        resource of that type with id ``"any"``. ``context`` adds ambient
        attributes visible to ``context`` conditions. It is not part of the
        cache key.
        """
        await self._ensure_initialized()
        generation = self._cache_generation

        resource_obj = Resource.coerce(resource)
        action_obj = Action.coerce(action, resource_obj.type)

        user = await self.storage.get_user(user_id)
        if user is None:
            return PermissionCheckResult(
                allowed=False,
                reason=f"User with id {user_id} does not exist"
            )

        evaluation_context = EvaluationContext(
            user=user,
            action=action_obj,
            resource=resource_obj,
            extra=dict(context or {})
        )

        cache_key = None
        if self.cache is not None:
            cache_key = build_decision_key(user_id, action_obj.type, resource_obj.type, resource_obj.id)
            cached = await self.cache.get(cache_key)
            if cached is not None:
                return PermissionCheckResult(allowed=cached, cache_hit=True)

        result = await self._evaluate(user, action_obj.type, resource_obj.type, evaluation_context)

        if cache_key is not None and generation == self._cache_generation:
            await self.cache.set(cache_key, result.allowed)

        return result

    async def _evaluate(
        self,
        user: User,
        action: str,
        resource_type: str,
        context: EvaluationContext
    ) -> PermissionCheckResult:
        permission = find_applicable_permission(user.permissions, action, resource_type, context)
        if permission is not None:
            return PermissionCheckResult(allowed=True, applicable_permissions=[permission])

        role_permissions = await self.resolver.resolve_many(user.roles)
        permission = find_applicable_permission(role_permissions, action, resource_type, context)
        if permission is not None:
            return PermissionCheckResult(allowed=True, applicable_permissions=[permission])

        return PermissionCheckResult(
            allowed=False,
            reason=f"User does not have permission to perform action '{action}' on resource type '{resource_type}'"
        )

    async def can_all(self, user_id: str, checks: Iterable[Any]) -> PermissionCheckResult:
        """Allowed only if every check passes; returns the first denial."""
        for check in checks:
            check = PermissionCheck.coerce(check)
            result = await self.can(user_id, check.action, check.resource)
            if not result.allowed:
                return result

        return PermissionCheckResult(allowed=True, reason="All permissions granted")

    async def can_any(self, user_id: str, checks: Iterable[Any]) -> PermissionCheckResult:
        """Allowed if any check passes; returns the first success. No checks means denied."""
        checks = [PermissionCheck.coerce(check) for check in checks]
        if not checks:
            return PermissionCheckResult(allowed=False, reason="No permissions to check")

        for check in checks:
            result = await self.can(user_id, check.action, check.resource)
            if result.allowed:
                return result

        return PermissionCheckResult(allowed=False, reason="No permissions granted")

    async def get_user_permissions(self, user_id: str) -> List[Permission]:
        """Role-resolved permissions followed by direct ones, duplicates kept."""
        await self._ensure_initialized()

        user = await self.storage.get_user(user_id)
        if user is None:
            return []

        permissions = await self.resolver.resolve_many(user.roles)
        permissions.extend(user.permissions)
        return permissions

    async def clear_cache(self) -> None:
        """Drop every cached decision; no-op when caching is disabled."""
        await self._invalidate_cache()

    async def get_cache_stats(self) -> Dict[str, Any]:
        """Statistics of the decision cache; empty when caching is disabled."""
        if self.cache is None:
            return {}
        return await self.cache.get_cache_stats()
