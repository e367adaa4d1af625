"""
Rules package.

Defines the permission model and the pure evaluation pieces used by the
RBAC manager.

Modules of interest:
- models: Data classes for Permission, Condition, Role, User, Resource,
  Action, EvaluationContext and check results.
- conditions: Condition evaluation against user, resource and context
  scopes, including dot-path attribute lookup.
- engine: Permission matching, first-match scans and role hierarchy
  resolution.
"""
