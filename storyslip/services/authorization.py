"""
Website membership authorization.

Every management-plane operation checks the requester's role on the
owning website through ``authorize``. The membership lookup is injected so
services can be exercised against any directory of (user, website) roles.

Usage:
    result = authorize(user_id, website_id, EDITOR_ROLES)
    result.raise_for_status()
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from ..models.website import WebsiteMember, MemberRole
from ..utils.exceptions import AuthorizationError


OWNER = MemberRole.OWNER.value
ADMIN = MemberRole.ADMIN.value
EDITOR = MemberRole.EDITOR.value

# Create and update widgets
EDITOR_ROLES = frozenset({OWNER, ADMIN, EDITOR})
# Delete widgets
MANAGER_ROLES = frozenset({OWNER, ADMIN})
# Read management data
MEMBER_ROLES = frozenset(role.value for role in MemberRole)


class AuthorizationStatus(str, Enum):
    AUTHORIZED = 'authorized'
    DENIED = 'denied'
    NOT_A_MEMBER = 'not_a_member'


@dataclass(frozen=True)
class AuthorizationResult:
    status: AuthorizationStatus
    website_id: str
    role: Optional[str] = None

    @property
    def authorized(self) -> bool:
        return self.status is AuthorizationStatus.AUTHORIZED

    def raise_for_status(self) -> 'AuthorizationResult':
        """Raise AuthorizationError unless authorized."""
        if self.status is AuthorizationStatus.NOT_A_MEMBER:
            raise AuthorizationError('Website not found or access denied')
        if self.status is AuthorizationStatus.DENIED:
            raise AuthorizationError(f"Role '{self.role}' is not permitted to perform this operation")
        return self


class MembershipDirectory:
    """Resolves a user's role on a website from website_members."""

    def role_for(self, user_id: str, website_id: str) -> Optional[str]:
        membership = WebsiteMember.get_membership(user_id, website_id)
        return membership.role if membership else None


_default_directory = MembershipDirectory()


def authorize(
    requester_id: Optional[str],
    website_id: str,
    required_roles: Iterable[str],
    directory: MembershipDirectory = None,
) -> AuthorizationResult:
    """
    Check that requester holds one of required_roles on website_id.

    Returns:
        AuthorizationResult tagged AUTHORIZED, DENIED or NOT_A_MEMBER
    """
    if not requester_id:
        return AuthorizationResult(AuthorizationStatus.NOT_A_MEMBER, website_id)

    role = (directory or _default_directory).role_for(requester_id, website_id)
    if role is None:
        return AuthorizationResult(AuthorizationStatus.NOT_A_MEMBER, website_id)
    if role not in set(required_roles):
        return AuthorizationResult(AuthorizationStatus.DENIED, website_id, role)
    return AuthorizationResult(AuthorizationStatus.AUTHORIZED, website_id, role)


AuthorizeFn = Callable[[Optional[str], str, Iterable[str]], AuthorizationResult]
