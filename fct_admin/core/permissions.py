"""
Roles and permissions.

Three roles exist (admin, coordinador, registrador) and each maps to a fixed
permission set. The role of an identity is stored in the `users` collection,
keyed by the account uid.

Provides:
- ROLE_PERMISSIONS / NO_ACCESS: the static role -> permission table
- RoleResolver: looks up the role document for a uid
- PermissionGate: shows or hides a piece of UI depending on the session
"""

import logging
from typing import Any, Iterable, Optional, Tuple, Union

from pydantic.alias_generators import to_camel
from pymongo.collection import Collection

from fct_admin.db.mongodb import get_collection, COLLECTIONS
from fct_admin.schemas.schemas import PermissionSet, UserRole

logger = logging.getLogger(__name__)


ROLE_PERMISSIONS = {
    UserRole.admin: PermissionSet(
        can_create=True,
        can_edit=True,
        can_delete=True,
        can_manage_users=True,
        can_view_pending_tasks=True,
    ),
    UserRole.coordinador: PermissionSet(
        can_create=False,
        can_edit=True,
        can_delete=False,
        can_manage_users=False,
        can_view_pending_tasks=True,
    ),
    UserRole.registrador: PermissionSet(
        can_create=True,
        can_edit=False,
        can_delete=False,
        can_manage_users=False,
        can_view_pending_tasks=True,
    ),
}

# Identity without a usable role assignment
NO_ACCESS = PermissionSet()

ROLE_NAMES = {
    UserRole.admin: "Administrador",
    UserRole.coordinador: "Coordinador",
    UserRole.registrador: "Registrador",
}

DEFAULT_ROLE = UserRole.registrador

# Accept both the wire names (canCreate) and the attribute names (can_create)
ACTIONS = {to_camel(name): name for name in PermissionSet.model_fields}
ACTIONS.update({name: name for name in PermissionSet.model_fields})


def action_attribute(action: str) -> str:
    """Normalise an action name to its PermissionSet attribute."""
    try:
        return ACTIONS[action]
    except KeyError:
        raise ValueError(f"Unknown permission: {action}") from None


def permissions_for(role: Optional[UserRole]) -> PermissionSet:
    if role is None:
        return NO_ACCESS
    return ROLE_PERMISSIONS[role]


def coerce_role(value: Any) -> UserRole:
    """Stored role value -> UserRole; empty or unrecognised values become registrador."""
    if not value:
        return DEFAULT_ROLE
    try:
        return UserRole(value)
    except ValueError:
        logger.warning("Unknown stored role %r, using %s", value, DEFAULT_ROLE.value)
        return DEFAULT_ROLE


class RoleResolver:
    """
    Resolves the role of an identity from its role-assignment document.

    Never writes. When no document exists or the store cannot be read the
    identity gets no role at all (every permission false); both cases behave
    the same.
    """

    def __init__(self, collection: Collection = None):
        self.collection: Collection = collection if collection is not None else get_collection(COLLECTIONS["users"])

    def resolve_role(self, uid: str) -> Tuple[Optional[UserRole], PermissionSet]:
        if not uid:
            raise ValueError("uid is required")

        try:
            doc = self.collection.find_one({"_id": uid}, {"role": 1})
        except Exception as e:
            logger.error("Role lookup failed for %s: %s", uid, e)
            return None, NO_ACCESS

        if doc is None:
            logger.warning("No role assignment for %s, denying all actions", uid)
            return None, NO_ACCESS

        role = coerce_role(doc.get("role"))
        return role, permissions_for(role)


class PermissionGate:
    """
    Decides whether a protected piece of UI is shown.

    `session` is anything exposing `loading`, `role` and
    `has_permission(action)` (normally an AuthSession). The gate keeps no state
    of its own, so every call reflects the session as it is now.
    """

    def __init__(self, session):
        self.session = session

    def render(self, action: str, content: Any, fallback: Any = None) -> Any:
        action_attribute(action)
        # nothing while permissions are unknown
        if self.session.loading:
            return None
        if self.session.has_permission(action):
            return content
        return fallback

    def render_for_roles(
        self,
        roles: Union[UserRole, Iterable[UserRole]],
        content: Any,
        fallback: Any = None
    ) -> Any:
        allowed = {roles} if isinstance(roles, UserRole) else set(roles)
        if self.session.loading:
            return None
        if self.session.role is not None and self.session.role in allowed:
            return content
        return fallback
