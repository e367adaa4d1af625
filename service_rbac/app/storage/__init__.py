"""
Storage package for the RBAC engine.

Role and user records are owned by a StorageBackend. The manager only
talks to the abstract contract in ``base``; ``memory`` provides the
dict-backed reference implementation used when no backend is injected.
SQL or document-store backends implement the same contract elsewhere.
"""
