"""
Request guards implementing the 404-vs-403 policy for family data.

A caller with no membership in the owning family gets 404 so that
record existence does not leak across families. A caller who can view
but not modify gets 403.
"""
from rest_framework.exceptions import NotFound, PermissionDenied

from apps.core.observability import metrics
from apps.core.observability.events import log_access_denied
from apps.families.models import EDIT_ROLES, FamilyRoleChoices
from apps.families.services import get_child_role, get_role


def _deny(user_id, child_id, reason):
    metrics.family_access_denied_total.labels(reason=reason).inc()
    log_access_denied(user_id, child_id, reason)


def require_child_access(user, child_id, edit=False) -> FamilyRoleChoices:
    """
    Return the caller's role for child_id or raise.

    Raises:
        NotFound: child missing or caller has no role in its family
        PermissionDenied: edit requested and the role is read_only
    """
    role = get_child_role(user.pk, child_id)
    if role is None:
        _deny(user.pk, child_id, 'no_relationship')
        raise NotFound('Child not found.')
    if edit and role not in EDIT_ROLES:
        _deny(user.pk, child_id, 'read_only')
        raise PermissionDenied('Read-only members cannot modify records.')
    return role


def require_family_role(user, family_id, edit=False, owner=False) -> FamilyRoleChoices:
    """
    Return the caller's role in family_id or raise.

    Raises:
        NotFound: caller is not a member
        PermissionDenied: edit/owner requested and the role does not allow it
    """
    role = get_role(user.pk, family_id)
    if role is None:
        raise NotFound('Family not found.')
    if owner and role != FamilyRoleChoices.OWNER:
        raise PermissionDenied('Only family owners can perform this action.')
    if edit and role not in EDIT_ROLES:
        raise PermissionDenied('Read-only members cannot manage this family.')
    return role
