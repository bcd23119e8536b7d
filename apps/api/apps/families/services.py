"""
Family membership, child ownership and permission evaluation.

Every function here reads committed state; nothing is cached between
calls, so a role change or revoked membership is honoured on the very
next request.

Role semantics:
- owner, parent: view and edit child data
- read_only: view child data and history
- anything else stored in family_member.role: no access
"""
import hashlib
import logging
import secrets
import uuid
from datetime import timedelta
from typing import List, Optional, Set, Tuple

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.clinical.models import Child
from apps.core.models import InstanceSettings
from apps.core.observability import log_domain_event, metrics
from apps.core.observability.events import log_default_family_bootstrap, log_unknown_role
from apps.families.models import (
    EDIT_ROLES,
    INVITABLE_ROLES,
    Family,
    FamilyInvite,
    FamilyMember,
    FamilyRoleChoices,
)

User = get_user_model()
logger = logging.getLogger(__name__)


# ============================================================================
# Errors
# ============================================================================

class OwnershipNotFound(Exception):
    """The referenced child does not exist."""
    pass


class FamilyMembershipError(Exception):
    """A membership change would break a family invariant."""
    pass


class InviteError(Exception):
    """Invite token is unknown, used or expired."""
    pass


class AlreadyMemberError(Exception):
    """The user already belongs to the invite's family."""
    pass


# ============================================================================
# Helpers
# ============================================================================

def as_uuid(value) -> Optional[uuid.UUID]:
    """Parse value as a UUID; None when it is not one."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def _coerce_role(family_id, user_id, raw) -> Optional[FamilyRoleChoices]:
    try:
        return FamilyRoleChoices(raw)
    except ValueError:
        metrics.family_unknown_role_total.inc()
        log_unknown_role(family_id, user_id, raw)
        return None


def hash_invite_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


# ============================================================================
# Membership Directory
# ============================================================================

def memberships_of(user_id) -> Set[Tuple[uuid.UUID, FamilyRoleChoices]]:
    """All (family_id, role) pairs for user_id. Empty for a user with no family."""
    rows = FamilyMember.objects.filter(user_id=user_id).values_list('family_id', 'role')
    memberships = set()
    for family_id, raw_role in rows:
        role = _coerce_role(family_id, user_id, raw_role)
        if role is not None:
            memberships.add((family_id, role))
    return memberships


def get_family_ids_for_user(user_id) -> List[uuid.UUID]:
    """Family ids the user belongs to with a known role, oldest family first."""
    member_of = {family_id for family_id, _ in memberships_of(user_id)}
    return list(
        Family.objects
        .filter(id__in=member_of)
        .order_by('created_at', 'id')
        .values_list('id', flat=True)
    )


def get_role(user_id, family_id) -> Optional[FamilyRoleChoices]:
    """The user's role in family_id, or None (no membership or unrecognised role)."""
    family_id = as_uuid(family_id)
    if user_id is None or family_id is None:
        return None
    raw_role = (
        FamilyMember.objects
        .filter(user_id=user_id, family_id=family_id)
        .values_list('role', flat=True)
        .first()
    )
    if raw_role is None:
        return None
    return _coerce_role(family_id, user_id, raw_role)


def can_edit_family(user_id, family_id) -> bool:
    return get_role(user_id, family_id) in EDIT_ROLES


def is_family_owner(user_id, family_id) -> bool:
    return get_role(user_id, family_id) == FamilyRoleChoices.OWNER


# ============================================================================
# Resource Ownership Resolver
# ============================================================================

def family_of_child(child_id) -> uuid.UUID:
    """
    Owning family of a child, looked up fresh through the child row.

    Raises:
        OwnershipNotFound: child_id is malformed or does not exist
    """
    parsed = as_uuid(child_id)
    family_id = None
    if parsed is not None:
        family_id = Child.objects.filter(pk=parsed).values_list('family_id', flat=True).first()
    if family_id is None:
        raise OwnershipNotFound(f'Child {child_id} not found')
    return family_id


def child_id_of(resource) -> uuid.UUID:
    """Child id for a child or any child-scoped record (visit, illness, measurement, attachment)."""
    if isinstance(resource, Child):
        return resource.pk
    return resource.child_id


# ============================================================================
# Permission Evaluator
# ============================================================================

def get_child_role(user_id, child_id) -> Optional[FamilyRoleChoices]:
    """Role the user holds in the family owning child_id; None if unrelated or missing."""
    try:
        family_id = family_of_child(child_id)
    except OwnershipNotFound:
        return None
    return get_role(user_id, family_id)


def can_access_child(user_id, child_id) -> bool:
    """Any known role in the child's family grants view."""
    return get_child_role(user_id, child_id) is not None


def can_edit_child(user_id, child_id) -> bool:
    """Owner or parent in the child's family grants edit; read_only never does."""
    return get_child_role(user_id, child_id) in EDIT_ROLES


def get_accessible_child_ids(user_id) -> List[uuid.UUID]:
    """Ids of every child in every family the user belongs to."""
    family_ids = [family_id for family_id, _ in memberships_of(user_id)]
    if not family_ids:
        return []
    return list(
        Child.objects
        .filter(family_id__in=family_ids)
        .order_by('created_at', 'id')
        .values_list('id', flat=True)
    )


# ============================================================================
# Family lifecycle
# ============================================================================

def _earliest_owned_family_id(user_id) -> Optional[uuid.UUID]:
    return (
        FamilyMember.objects
        .filter(user_id=user_id, role=FamilyRoleChoices.OWNER)
        .order_by('family__created_at', 'family_id')
        .values_list('family_id', flat=True)
        .first()
    )


def get_or_create_default_family_for_user(user_id) -> uuid.UUID:
    """
    Family the user owns, creating one (plus owner membership) if none.

    Idempotent. The user row is locked for the duration so concurrent
    first requests for the same user run one after the other; the unique
    family.default_owner column backs this up where row locks are not
    available. If that constraint fires, the surplus insert is rolled
    back and the existing default family is returned.
    """
    with transaction.atomic():
        User.objects.select_for_update().get(pk=user_id)

        existing = _earliest_owned_family_id(user_id)
        if existing is not None:
            metrics.default_family_bootstrap_total.labels(outcome='existing').inc()
            return existing

        name = InstanceSettings.load().default_family_name
        try:
            with transaction.atomic():
                family = Family.objects.create(name=name, default_owner_id=user_id)
                FamilyMember.objects.create(
                    family=family,
                    user_id=user_id,
                    role=FamilyRoleChoices.OWNER,
                )
        except IntegrityError:
            family = Family.objects.get(default_owner_id=user_id)
            FamilyMember.objects.update_or_create(
                family=family,
                user_id=user_id,
                defaults={'role': FamilyRoleChoices.OWNER},
            )
            metrics.default_family_bootstrap_total.labels(outcome='recovered').inc()
            log_default_family_bootstrap(user_id, family.id, 'recovered')
            return family.id

    metrics.default_family_bootstrap_total.labels(outcome='created').inc()
    log_default_family_bootstrap(user_id, family.id, 'created')
    return family.id


def create_family(user, name: str) -> Family:
    """Create a family with user as its owner; both rows commit together."""
    with transaction.atomic():
        family = Family.objects.create(name=name)
        FamilyMember.objects.create(family=family, user=user, role=FamilyRoleChoices.OWNER)

    log_domain_event(
        'family_created',
        entity_type='Family',
        entity_id=str(family.id),
        entity_ids={'owner_user_id': str(user.pk)},
    )
    return family


def change_member_role(family: Family, target_user_id, role: str) -> FamilyMember:
    """
    Set a non-owner member's role to parent or read_only.

    Raises:
        FamilyMember.DoesNotExist: target is not a member
        FamilyMembershipError: target is an owner or role is not assignable
    """
    if role not in INVITABLE_ROLES:
        raise FamilyMembershipError('role must be "parent" or "read_only"')

    with transaction.atomic():
        member = FamilyMember.objects.select_for_update().get(family=family, user_id=target_user_id)
        if member.role == FamilyRoleChoices.OWNER:
            raise FamilyMembershipError('Cannot change the role of an owner.')
        previous = member.role
        member.role = role
        member.save(update_fields=['role'])

    log_domain_event(
        'family_member_role_changed',
        entity_type='Family',
        entity_id=str(family.id),
        entity_ids={'member_user_id': str(target_user_id)},
        from_role=previous,
        to_role=role,
    )
    return member


def remove_member(family: Family, target_user_id, acting_user_id) -> None:
    """
    Delete a membership. Removing the family's last owner is refused.

    Raises:
        FamilyMember.DoesNotExist: target is not a member
        FamilyMembershipError: target is the last owner
    """
    with transaction.atomic():
        owners = list(
            FamilyMember.objects
            .select_for_update()
            .filter(family=family, role=FamilyRoleChoices.OWNER)
            .values_list('user_id', flat=True)
        )
        member = FamilyMember.objects.get(family=family, user_id=target_user_id)

        if member.role == FamilyRoleChoices.OWNER and len(owners) <= 1:
            raise FamilyMembershipError(
                'Cannot remove the last owner. Transfer ownership first or delete the family.'
            )

        member.delete()

        # A user who leaves their bootstrap family may be bootstrapped again later
        if family.default_owner_id == member.user_id:
            Family.objects.filter(pk=family.pk).update(default_owner=None)

    log_domain_event(
        'family_member_removed',
        entity_type='Family',
        entity_id=str(family.id),
        entity_ids={'member_user_id': str(target_user_id)},
        self_removal=str(target_user_id) == str(acting_user_id),
    )


# ============================================================================
# Invites
# ============================================================================

def create_invite(family: Family, role: str, created_by) -> Tuple[FamilyInvite, str]:
    """
    Create an invite and return it with the raw token.

    The raw token is never stored and cannot be recovered later.
    """
    if role not in INVITABLE_ROLES:
        raise FamilyMembershipError('role must be "parent" or "read_only"')

    token = secrets.token_hex(16)
    invite = FamilyInvite.objects.create(
        family=family,
        role=role,
        token_hash=hash_invite_token(token),
        created_by=created_by,
        expires_at=timezone.now() + timedelta(days=settings.FAMILY_INVITE_EXPIRY_DAYS),
    )
    metrics.family_invites_total.labels(result='created').inc()
    return invite, token


def pending_invites(family: Family):
    return FamilyInvite.objects.filter(
        family=family,
        used_at__isnull=True,
        expires_at__gt=timezone.now(),
    ).order_by('-created_at')


def accept_invite(token: str, user) -> FamilyMember:
    """
    Redeem an invite token for user.

    Membership insert and invite consumption commit together, so the new
    membership is visible to get_family_ids_for_user as soon as this
    returns.

    Raises:
        InviteError: token unknown, already used, or expired
        AlreadyMemberError: user already belongs to the family
    """
    with transaction.atomic():
        invite = (
            FamilyInvite.objects
            .select_for_update()
            .select_related('family')
            .filter(token_hash=hash_invite_token(token or ''))
            .first()
        )
        if invite is None:
            metrics.family_invites_total.labels(result='rejected').inc()
            raise InviteError('Invalid or expired invite token')
        if invite.is_used:
            metrics.family_invites_total.labels(result='rejected').inc()
            raise InviteError('This invite has already been used')
        if invite.is_expired:
            metrics.family_invites_total.labels(result='rejected').inc()
            raise InviteError('This invite has expired')

        if FamilyMember.objects.filter(family=invite.family, user=user).exists():
            raise AlreadyMemberError('You are already a member of this family')

        member = FamilyMember.objects.create(family=invite.family, user=user, role=invite.role)
        invite.used_at = timezone.now()
        invite.used_by = user
        invite.save(update_fields=['used_at', 'used_by'])

    metrics.family_invites_total.labels(result='accepted').inc()
    log_domain_event(
        'family_invite_accepted',
        entity_type='Family',
        entity_id=str(invite.family_id),
        entity_ids={'invite_id': str(invite.id), 'member_user_id': str(user.pk)},
        granted_role=invite.role,
    )
    return member
