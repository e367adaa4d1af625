"""
Configuration for the RBAC engine.
"""

from typing import Literal

from shared.config import BaseConfig


class RBACConfig(BaseConfig):
    """Engine options, overridable through ``ACCESS_*`` environment variables."""
    
    # Expand parent_roles when resolving role permissions
    enforce_hierarchical_roles: bool = True
    
    # Decision cache
    cache_permissions: bool = False
    cache_backend: Literal["memory", "redis"] = "memory"
    cache_ttl_seconds: int = 300


def get_rbac_config(**overrides) -> RBACConfig:
    """Get engine configuration; keyword overrides take precedence over the environment."""
    return RBACConfig(**overrides)
