"""
Auth session state.

One AuthSession holds the current identity together with its resolved role
and permissions. It is only changed through `on_identity_changed`, which the
identity service calls on sign-in/sign-out and the request dependency calls
with the identity carried by the bearer token.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fct_admin.core.permissions import NO_ACCESS, ROLE_NAMES, RoleResolver, action_attribute
from fct_admin.schemas.schemas import PermissionSet, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str
    display_name: Optional[str] = None


class AuthSession:
    """Current identity + role + permissions. `loading` is True until the first resolution."""

    def __init__(self, resolver: RoleResolver):
        self.resolver = resolver
        self.identity: Optional[Identity] = None
        self.role: Optional[UserRole] = None
        self.permissions: Optional[PermissionSet] = None
        self.loading = True

    def on_identity_changed(self, identity: Optional[Identity]) -> None:
        self.loading = True
        self.identity = identity

        if identity is None:
            self.role, self.permissions = None, NO_ACCESS
        else:
            self.role, self.permissions = self.resolver.resolve_role(identity.uid)
            logger.debug("Resolved %s as %s", identity.uid, self.role)

        self.loading = False

    @property
    def authenticated(self) -> bool:
        return self.identity is not None

    @property
    def role_name(self) -> Optional[str]:
        return ROLE_NAMES.get(self.role) if self.role else None

    def has_permission(self, action: str) -> bool:
        attribute = action_attribute(action)
        if self.loading or self.permissions is None:
            return False
        return getattr(self.permissions, attribute)
