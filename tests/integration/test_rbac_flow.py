"""
Integration tests for the RBAC engine: a publishing workflow end to end.
"""

import pytest

from service_rbac.app.config import RBACConfig
from service_rbac.app.manager import RBACManager
from service_rbac.app.rules.models import Condition, Permission, Role, User


def owns_resource(context, user, resource):
    return resource.attributes.get("author_id") == user.id


@pytest.fixture
def roles():
    """Roles of a small publishing platform."""
    return [
        Role("reader", "Reader", [
            Permission("read", "post", condition=Condition(
                type="resource", field="status", operator="eq", value="published"
            )),
        ]),
        Role("author", "Author", [
            Permission("create", "post"),
            Permission("edit", "post", condition=Condition(type="function", custom_function=owns_resource)),
            Permission("read", "post", condition=Condition(type="function", custom_function=owns_resource)),
        ], parent_roles=["reader"]),
        Role("moderator", "Moderator", [
            Permission("edit", "post"),
            Permission("delete", "comment", condition=Condition(
                type="context", field="reports", operator="gte", value=3
            )),
        ], parent_roles=["reader"]),
    ]


class TestPublishingFlow:
    """End-to-end decisions through RBACManager."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("cache_permissions", [False, True])
    async def test_publishing_workflow(self, roles, cache_permissions):
        async with RBACManager(RBACConfig(cache_permissions=cache_permissions)) as rbac:
            for role in roles:
                await rbac.add_role(role)
            await rbac.add_user(User("alice", roles=["author"], attributes={"name": "Alice"}))
            await rbac.add_user(User("mo", roles=["moderator"]))
            await rbac.add_user({"id": "guest", "roles": ["reader"]})

            published = {"type": "post", "id": "p1", "status": "published", "author_id": "bob"}
            own_draft = {"type": "post", "id": "p2", "status": "draft", "author_id": "alice"}
            other_draft = {"type": "post", "id": "p3", "status": "draft", "author_id": "bob"}

            # Readers only see published posts
            assert (await rbac.can("guest", "read", published)).allowed is True
            assert (await rbac.can("guest", "read", other_draft)).allowed is False

            # Authors see and edit their own drafts, inherit reader access
            assert (await rbac.can("alice", "read", own_draft)).allowed is True
            assert (await rbac.can("alice", "read", other_draft)).allowed is False
            assert (await rbac.can("alice", "edit", own_draft)).allowed is True
            assert (await rbac.can("alice", "edit", published)).allowed is False
            assert (await rbac.can("alice", "read", published)).allowed is True

            # Moderators edit anything; comment removal needs enough reports
            assert (await rbac.can("mo", "edit", other_draft)).allowed is True
            comment = {"type": "comment", "id": "c1"}
            assert (await rbac.can("mo", "delete", comment, context={"reports": 5})).allowed is True

            bulk = await rbac.can_all("alice", [("create", "post"), ("edit", own_draft), ("delete", "post")])
            assert bulk.allowed is False
            assert "'delete'" in bulk.reason

            assert (await rbac.can_any("guest", [("edit", published), ("read", published)])).allowed is True

            # Promotion takes effect immediately, cached or not
            await rbac.assign_role_to_user("alice", "moderator")
            assert (await rbac.can("alice", "edit", published)).allowed is True

            await rbac.revoke_role_from_user("alice", "author")
            assert (await rbac.can("alice", "create", "post")).allowed is False

            assert await rbac.get_role_count() == 3
            assert await rbac.get_user_count() == 3

    @pytest.mark.asyncio
    async def test_user_removal(self, roles):
        rbac = RBACManager(RBACConfig(cache_permissions=True))
        for role in roles:
            await rbac.add_role(role)
        await rbac.add_user(User("alice", roles=["reader"]))
        post = {"type": "post", "id": "p1", "status": "published"}
        assert (await rbac.can("alice", "read", post)).allowed is True

        await rbac.remove_user("alice")

        result = await rbac.can("alice", "read", post)
        assert result.allowed is False
        assert result.reason == "User with id alice does not exist"
        await rbac.close()
