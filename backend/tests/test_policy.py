"""
Unit tests for the authorization policy.

The policy is a pure function, so these tests build users and resources
in memory without a database.
"""

import pytest

from agora.core.exceptions import Forbidden, Unauthenticated
from agora.models.forum import Post, Reply
from agora.models.user import User, UserRole
from agora.modules.auth.policy import Action, DenyReason, authorize, decide


def make_user(user_id: str, role: UserRole = UserRole.MEMBER, banned: bool = False) -> User:
    return User(id=user_id, email=f"{user_id}@example.com", role=role, banned=banned)


@pytest.fixture
def member() -> User:
    return make_user("member")


@pytest.fixture
def other_member() -> User:
    return make_user("other")


@pytest.fixture
def moderator() -> User:
    return make_user("mod", UserRole.MODERATOR)


@pytest.fixture
def admin() -> User:
    return make_user("admin", UserRole.ADMIN)


@pytest.fixture
def post(member: User) -> Post:
    return Post(id="p1", forum_id="f1", author_id=member.id, title="Hi", content="Hello")


def test_view_is_public():
    decision = decide(None, Action.VIEW)
    assert decision.allowed
    assert decision.reason is None


@pytest.mark.parametrize(
    "action",
    [a for a in Action if a is not Action.VIEW],
)
def test_anonymous_denied_everything_but_view(action):
    decision = decide(None, action)
    assert not decision.allowed
    assert decision.reason is DenyReason.NOT_AUTHENTICATED


@pytest.mark.parametrize(
    "action",
    [Action.CREATE_POST, Action.CREATE_REPLY, Action.UPLOAD_FILE],
)
def test_members_may_contribute(member, action):
    assert decide(member, action).allowed


def test_vip_has_member_rights_only():
    vip = make_user("vip", UserRole.VIP)
    assert decide(vip, Action.CREATE_POST).allowed
    assert not decide(vip, Action.CREATE_FORUM).allowed
    assert not decide(vip, Action.BAN_USER).allowed


def test_author_may_edit_and_delete_own_post(member, post):
    assert decide(member, Action.EDIT_POST, post).allowed
    assert decide(member, Action.DELETE_POST, post).allowed


def test_other_member_may_not_touch_post(other_member, post):
    decision = decide(other_member, Action.DELETE_POST, post)
    assert not decision.allowed
    assert decision.reason is DenyReason.FORBIDDEN


def test_staff_may_edit_any_reply(moderator, admin, member):
    reply = Reply(id="r1", post_id="p1", author_id=member.id, content="x")
    assert decide(moderator, Action.EDIT_REPLY, reply).allowed
    assert decide(admin, Action.DELETE_REPLY, reply).allowed


def test_ownership_rule_without_resource_denies(member):
    assert not decide(member, Action.EDIT_POST, None).allowed


def test_forum_create_and_delete_are_asymmetric(moderator, admin):
    assert decide(moderator, Action.CREATE_FORUM).allowed
    assert not decide(moderator, Action.DELETE_FORUM).allowed
    assert decide(admin, Action.DELETE_FORUM).allowed


def test_user_administration(member, moderator, admin):
    assert decide(moderator, Action.BAN_USER).allowed
    assert decide(moderator, Action.UNBAN_USER).allowed
    assert not decide(moderator, Action.CHANGE_ROLE).allowed
    assert not decide(moderator, Action.LIST_USERS).allowed
    assert decide(admin, Action.CHANGE_ROLE).allowed
    assert decide(admin, Action.LIST_USERS).allowed
    assert not decide(member, Action.BAN_USER).allowed


def test_banned_user_denied_even_own_content(post):
    banned = make_user("member", banned=True)
    decision = decide(banned, Action.EDIT_POST, post)
    assert not decision.allowed
    assert decision.reason is DenyReason.FORBIDDEN
    assert decide(banned, Action.VIEW).allowed


def test_banned_admin_loses_privileges():
    banned_admin = make_user("admin", UserRole.ADMIN, banned=True)
    assert not decide(banned_admin, Action.DELETE_FORUM).allowed


def test_authorize_raises_matching_errors(member):
    with pytest.raises(Unauthenticated):
        authorize(None, Action.CREATE_POST)
    with pytest.raises(Forbidden):
        authorize(member, Action.CREATE_FORUM)
    authorize(member, Action.CREATE_POST)
