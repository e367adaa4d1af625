"""
RBAC engine package for the 254Carbon Access Layer.

This package decides whether a user may perform an action on a resource.
Permissions come from three sources, checked in order: grants attached
directly to the user, grants on the user's roles, and grants inherited
from parent roles. It provides:

- app.manager: RBACManager facade (role/user CRUD and decisions).
- app.rules: Data model, condition evaluation, matching and hierarchy.
- app.storage: Storage contract and the in-memory reference backend.
- app.cache: Decision caches (in-memory and Redis-backed).
- app.config: Engine options loaded from the environment.

Guidelines:
- Storage is injected; the manager never owns authoritative state.
- Decisions fail closed: anything unexpected resolves to a denial.
- Any role/user mutation invalidates every cached decision.
"""
