"""
Shared utilities for the 254Carbon Access Layer RBAC engine.

This package aggregates common building blocks consumed by service_rbac:

- config: Base configuration via pydantic-settings
- logging: Structured logging with correlation context
- errors: Canonical error types and responses

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
