"""
Authorization Policy.

Pure decision function mapping (actor, action, resource) to allow/deny.
Nothing here touches the database: callers load the resource first and
pass it in.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from agora.core.exceptions import Forbidden, Unauthenticated
from agora.models.user import STAFF_ROLES, User, UserRole


class Action(str, Enum):
    """Operations gated by the policy."""

    VIEW = "view"
    CREATE_POST = "create_post"
    EDIT_POST = "edit_post"
    DELETE_POST = "delete_post"
    CREATE_REPLY = "create_reply"
    EDIT_REPLY = "edit_reply"
    DELETE_REPLY = "delete_reply"
    UPLOAD_FILE = "upload_file"
    CREATE_FORUM = "create_forum"
    DELETE_FORUM = "delete_forum"
    CHANGE_ROLE = "change_role"
    BAN_USER = "ban_user"
    UNBAN_USER = "unban_user"
    LIST_USERS = "list_users"


class DenyReason(str, Enum):
    NOT_AUTHENTICATED = "not_authenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Decision:
    """Outcome of a policy check. Denials always carry a reason."""

    allowed: bool
    reason: DenyReason | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(False, reason)


Rule = Callable[[User, Any], bool]


def _any_member(actor: User, resource: Any) -> bool:
    return True


def _author_or_staff(actor: User, resource: Any) -> bool:
    if actor.role in STAFF_ROLES:
        return True
    return resource is not None and getattr(resource, "author_id", None) == actor.id


def _staff(actor: User, resource: Any) -> bool:
    return actor.role in STAFF_ROLES


def _admin(actor: User, resource: Any) -> bool:
    return actor.role == UserRole.ADMIN


# Forum creation is open to moderators while deletion is admin-only.
RULES: dict[Action, Rule] = {
    Action.CREATE_POST: _any_member,
    Action.CREATE_REPLY: _any_member,
    Action.UPLOAD_FILE: _any_member,
    Action.EDIT_POST: _author_or_staff,
    Action.DELETE_POST: _author_or_staff,
    Action.EDIT_REPLY: _author_or_staff,
    Action.DELETE_REPLY: _author_or_staff,
    Action.CREATE_FORUM: _staff,
    Action.DELETE_FORUM: _admin,
    Action.CHANGE_ROLE: _admin,
    Action.BAN_USER: _staff,
    Action.UNBAN_USER: _staff,
    Action.LIST_USERS: _admin,
}

PUBLIC_ACTIONS = frozenset({Action.VIEW})


def decide(actor: User | None, action: Action, resource: Any = None) -> Decision:
    """
    Decide whether actor may perform action on resource.

    Args:
        actor: Authenticated user, or None for anonymous requests
        action: Operation being attempted
        resource: Target entity; ownership rules read its ``author_id``

    Returns:
        Allow, or Deny with NOT_AUTHENTICATED / FORBIDDEN
    """
    if action in PUBLIC_ACTIONS:
        return Decision.allow()

    if actor is None:
        return Decision.deny(DenyReason.NOT_AUTHENTICATED)

    if actor.banned:
        return Decision.deny(DenyReason.FORBIDDEN)

    rule = RULES.get(action)
    if rule is None or not rule(actor, resource):
        return Decision.deny(DenyReason.FORBIDDEN)

    return Decision.allow()


def authorize(actor: User | None, action: Action, resource: Any = None) -> None:
    """Raise Unauthenticated or Forbidden unless the policy allows."""
    decision = decide(actor, action, resource)
    if decision.allowed:
        return
    if decision.reason is DenyReason.NOT_AUTHENTICATED:
        raise Unauthenticated()
    raise Forbidden()
