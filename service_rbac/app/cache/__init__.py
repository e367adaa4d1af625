"""
Cache package for the RBAC engine.

Memoizes boolean decisions keyed by user, action, resource type and
resource id. ``decision_cache`` holds the contract and a thread-safe
in-memory cache; ``redis_cache`` shares decisions across processes with
per-entry TTLs. Both are invalidated as a whole on any mutation.
"""
