"""
Data models for the RBAC engine.
"""

from typing import Dict, Any, Optional, List, Callable, Mapping, Union
from dataclasses import dataclass, field
from enum import Enum


class ConditionType(str, Enum):
    """Scope a condition is evaluated against."""
    USER = "user"
    RESOURCE = "resource"
    CONTEXT = "context"
    FUNCTION = "function"


class ConditionOperator(str, Enum):
    """Condition comparison operators."""
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NIN = "nin"
    CONTAINS = "contains"
    REGEX = "regex"


def _coerce_enum(enum_cls, value):
    # Unrecognized values are kept as-is and evaluate to a denial later.
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class Condition:
    """Predicate that must hold for a permission to apply.

    ``field`` is a dot-path into the selected scope and is required for every
    type except ``function``, which calls ``custom_function(context, user,
    resource)`` instead.
    """
    type: ConditionType
    operator: ConditionOperator = ConditionOperator.EQ
    value: Any = None
    field: Optional[str] = None
    custom_function: Optional[Callable[..., bool]] = None

    def __post_init__(self):
        object.__setattr__(self, "type", _coerce_enum(ConditionType, self.type))
        object.__setattr__(self, "operator", _coerce_enum(ConditionOperator, self.operator))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Condition":
        return cls(
            type=data.get("type"),
            operator=data.get("operator", ConditionOperator.EQ),
            value=data.get("value"),
            field=data.get("field"),
            custom_function=data.get("custom_function"),
        )


@dataclass(frozen=True)
class Permission:
    """Grant to perform ``action`` on resources of ``resource_type``."""
    action: str
    resource_type: str
    condition: Optional[Condition] = None
    attributes: Optional[List[str]] = None

    def __post_init__(self):
        if isinstance(self.condition, Mapping):
            object.__setattr__(self, "condition", Condition.from_dict(self.condition))

    @classmethod
    def from_dict(cls, data: Union["Permission", Mapping[str, Any]]) -> "Permission":
        if isinstance(data, Permission):
            return data
        return cls(
            action=data.get("action"),
            resource_type=data.get("resource_type"),
            condition=data.get("condition"),
            attributes=data.get("attributes"),
        )


def _coerce_permissions(value: Any) -> Any:
    # Non-list values pass through so the manager can reject them.
    if isinstance(value, list):
        return [Permission.from_dict(item) for item in value]
    return value


@dataclass
class Role:
    """Named set of permissions, optionally inheriting from parent roles."""
    id: str
    name: str
    permissions: List[Permission] = field(default_factory=list)
    description: Optional[str] = None
    parent_roles: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Role":
        parent_roles = data.get("parent_roles")
        return cls(
            id=data.get("id"),
            name=data.get("name"),
            permissions=_coerce_permissions(data.get("permissions", [])),
            description=data.get("description"),
            parent_roles=[] if parent_roles is None else parent_roles,
        )


@dataclass
class User:
    """Principal holding role ids, direct grants and free-form attributes."""
    id: str
    roles: List[str] = field(default_factory=list)
    permissions: List[Permission] = field(default_factory=list)
    attributes: Dict[str, Any] = field(default_factory=dict)

    CORE_FIELDS = ("id", "roles", "permissions")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "User":
        permissions = data.get("permissions")
        attributes = dict(data.get("attributes") or {})
        attributes.update(
            (key, value) for key, value in data.items()
            if key not in cls.CORE_FIELDS and key != "attributes"
        )
        return cls(
            id=data.get("id"),
            roles=data.get("roles"),
            permissions=[] if permissions is None else _coerce_permissions(permissions),
            attributes=attributes,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Flat view used by dot-path lookups; core fields win over attributes."""
        return {
            **self.attributes,
            "id": self.id,
            "roles": list(self.roles),
            "permissions": list(self.permissions),
        }


@dataclass
class Resource:
    """Target of a decision, supplied by the caller at query time."""
    type: str
    id: str = "any"
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Union[str, "Resource", Mapping[str, Any]]) -> "Resource":
        if isinstance(value, Resource):
            return value
        if isinstance(value, str):
            return cls(type=value)
        return cls(
            type=value.get("type"),
            id=value.get("id", "any"),
            attributes={k: v for k, v in value.items() if k not in ("type", "id")},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {**self.attributes, "type": self.type, "id": self.id}


@dataclass
class Action:
    """Requested operation; ``resource`` names the resource type it targets."""
    type: str
    resource: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Union[str, "Action", Mapping[str, Any]], resource_type: str) -> "Action":
        if isinstance(value, Action):
            return value
        if isinstance(value, str):
            return cls(type=value, resource=resource_type)
        return cls(
            type=value.get("type"),
            resource=value.get("resource", resource_type),
            attributes={k: v for k, v in value.items() if k not in ("type", "resource")},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {**self.attributes, "type": self.type, "resource": self.resource}


@dataclass
class EvaluationContext:
    """Context for a single decision; never persisted."""
    user: User
    action: Action
    resource: Resource
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.extra,
            "user": self.user.to_dict(),
            "action": self.action.to_dict(),
            "resource": self.resource.to_dict(),
        }


@dataclass
class PermissionCheck:
    """One (action, resource) pair of a bulk check."""
    action: Union[str, Action]
    resource: Union[str, Resource, Mapping[str, Any]]

    @classmethod
    def coerce(cls, value: Any) -> "PermissionCheck":
        if isinstance(value, PermissionCheck):
            return value
        if isinstance(value, Mapping):
            return cls(action=value["action"], resource=value["resource"])
        action, resource = value
        return cls(action=action, resource=resource)


@dataclass
class PermissionCheckResult:
    """Result of a permission check."""
    allowed: bool
    reason: Optional[str] = None
    applicable_permissions: List[Permission] = field(default_factory=list)
    cache_hit: bool = False
