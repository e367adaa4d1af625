"""
RBAC decision engine for the 254Carbon Access Layer.
"""
