"""
Unit tests for condition evaluation.
"""

import pytest

from service_rbac.app.rules.conditions import compare_values, evaluate_condition, get_nested_value
from service_rbac.app.rules.models import (
    Action, Condition, ConditionOperator, ConditionType, EvaluationContext, Resource, User
)


@pytest.fixture
def context():
    """Create evaluation context."""
    user = User(
        id="user-123",
        roles=["editor"],
        attributes={
            "department": "engineering",
            "level": 3,
            "profile": {"email": "jane@254carbon.com", "verified": True},
            "teams": ["curves", "pricing"]
        }
    )
    resource = Resource(
        type="post",
        id="post-1",
        attributes={"status": "published", "author_id": "user-123", "tags": ["oil", "gas"]}
    )
    return EvaluationContext(
        user=user,
        action=Action(type="read", resource="post"),
        resource=resource,
        extra={"hour": 14, "request": {"ip": "10.0.0.1"}}
    )


class TestNestedLookup:
    """Test cases for dot-path lookup."""

    def test_top_level_key(self):
        assert get_nested_value({"a": 1}, "a") == 1

    def test_nested_key(self):
        assert get_nested_value({"profile": {"email": "x@y"}}, "profile.email") == "x@y"

    def test_missing_segment_returns_none(self):
        assert get_nested_value({"profile": {}}, "profile.email") is None
        assert get_nested_value({"profile": None}, "profile.email") is None

    def test_object_attribute(self):
        resource = Resource(type="post", id="p1")
        assert get_nested_value({"resource": resource}, "resource.id") == "p1"


class TestCompareValues:
    """Test cases for operator semantics."""

    def test_eq_is_strict(self):
        assert compare_values("a", "a", "eq") is True
        assert compare_values(1, "1", "eq") is False
        assert compare_values(True, 1, "eq") is False
        assert compare_values(1, True, "eq") is False

    def test_ne(self):
        assert compare_values("draft", "published", "ne") is True
        assert compare_values("draft", "draft", "ne") is False

    def test_ordering_operators(self):
        assert compare_values(5, 3, "gt") is True
        assert compare_values(3, 3, "gte") is True
        assert compare_values(2, 3, "lt") is True
        assert compare_values(3, 3, "lte") is True
        assert compare_values("b", "a", "gt") is True

    def test_ordering_type_mismatch_is_false(self):
        assert compare_values("5", 3, "gt") is False
        assert compare_values(None, 3, "lt") is False

    def test_in_and_nin(self):
        assert compare_values("oil", ["oil", "gas"], "in") is True
        assert compare_values("coal", ["oil", "gas"], "in") is False
        assert compare_values("coal", ["oil", "gas"], "nin") is True
        assert compare_values("oil", ("oil",), "nin") is False

    def test_in_requires_collection(self):
        assert compare_values("o", "oil", "in") is False
        assert compare_values("o", "oil", "nin") is False

    def test_in_is_strict(self):
        assert compare_values(1, [True], "in") is False

    def test_contains_substring(self):
        assert compare_values("hello world", "world", "contains") is True
        assert compare_values("hello", "bye", "contains") is False

    def test_contains_element(self):
        assert compare_values(["a", "b"], "b", "contains") is True
        assert compare_values(["a", "b"], "c", "contains") is False

    def test_contains_on_other_types_is_false(self):
        assert compare_values(42, 4, "contains") is False
        assert compare_values("abc", 1, "contains") is False

    def test_regex(self):
        assert compare_values("jane@254carbon.com", r"@254carbon\.com$", "regex") is True
        assert compare_values("jane@example.com", r"@254carbon\.com$", "regex") is False

    def test_regex_invalid_pattern_is_false(self):
        assert compare_values("abc", "(", "regex") is False

    def test_regex_non_string_is_false(self):
        assert compare_values(123, r"\d+", "regex") is False

    def test_unknown_operator_is_false(self):
        assert compare_values("a", "a", "startswith") is False

    def test_enum_operator(self):
        assert compare_values(1, 1, ConditionOperator.EQ) is True


class TestEvaluateCondition:
    """Test cases for scoped condition evaluation."""

    def test_user_condition(self, context):
        condition = Condition(type="user", field="department", operator="eq", value="engineering")
        assert evaluate_condition(condition, context) is True

    def test_user_nested_condition(self, context):
        condition = Condition(type="user", field="profile.verified", operator="eq", value=True)
        assert evaluate_condition(condition, context) is True

    def test_user_core_field(self, context):
        condition = Condition(type="user", field="roles", operator="contains", value="editor")
        assert evaluate_condition(condition, context) is True

    def test_resource_condition(self, context):
        condition = Condition(type="resource", field="status", operator="eq", value="draft")
        assert evaluate_condition(condition, context) is False

    def test_resource_in_condition(self, context):
        condition = Condition(type="resource", field="tags", operator="contains", value="gas")
        assert evaluate_condition(condition, context) is True

    def test_context_condition(self, context):
        condition = Condition(type="context", field="hour", operator="lt", value=18)
        assert evaluate_condition(condition, context) is True

    def test_context_can_reach_user_and_resource(self, context):
        condition = Condition(type="context", field="resource.author_id", operator="eq", value="user-123")
        assert evaluate_condition(condition, context) is True

    def test_context_nested_extra(self, context):
        condition = Condition(type="context", field="request.ip", operator="regex", value=r"^10\.")
        assert evaluate_condition(condition, context) is True

    def test_missing_field_is_false(self, context):
        condition = Condition(type="user", operator="eq", value="engineering")
        assert evaluate_condition(condition, context) is False

    def test_missing_attribute_is_false(self, context):
        condition = Condition(type="user", field="clearance", operator="gte", value=2)
        assert evaluate_condition(condition, context) is False

    def test_unknown_type_is_false(self, context):
        condition = Condition(type="tenant", field="id", operator="eq", value="t1")
        assert condition.type == "tenant"
        assert evaluate_condition(condition, context) is False

    def test_function_condition(self, context):
        def is_author(ctx, user, resource):
            return resource.attributes["author_id"] == user.id

        condition = Condition(type=ConditionType.FUNCTION, custom_function=is_author)
        assert evaluate_condition(condition, context) is True

    def test_function_receives_context(self, context):
        seen = {}

        def capture(ctx, user, resource):
            seen["ctx"], seen["user"], seen["resource"] = ctx, user, resource
            return False

        condition = Condition(type="function", custom_function=capture)
        assert evaluate_condition(condition, context) is False
        assert seen["ctx"] is context
        assert seen["user"] is context.user
        assert seen["resource"] is context.resource

    def test_function_without_callable_fails_closed(self, context):
        condition = Condition(type="function")
        assert evaluate_condition(condition, context) is False

    def test_function_exception_fails_closed(self, context):
        def broken(ctx, user, resource):
            raise RuntimeError("boom")

        condition = Condition(type="function", custom_function=broken)
        assert evaluate_condition(condition, context) is False
