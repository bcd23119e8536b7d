"""
Family models: family, family_member, family_invite
"""
import uuid
from django.conf import settings
from django.db import models
from django.utils import timezone


# ============================================================================
# Enums
# ============================================================================

class FamilyRoleChoices(models.TextChoices):
    """
    Per-family capability level.

    - OWNER: edit child data; rename/delete the family; manage members
    - PARENT: edit child data; manage members and invites
    - READ_ONLY: view child data and history only
    """
    OWNER = 'owner', 'Owner'
    PARENT = 'parent', 'Parent'
    READ_ONLY = 'read_only', 'Read only'


# Roles that may mutate child-scoped records
EDIT_ROLES = frozenset({FamilyRoleChoices.OWNER, FamilyRoleChoices.PARENT})

# Roles an invite may grant; ownership is never handed out by token
INVITABLE_ROLES = (FamilyRoleChoices.PARENT, FamilyRoleChoices.READ_ONLY)


# ============================================================================
# Family
# ============================================================================

class Family(models.Model):
    """
    Tenant boundary grouping users and the children they manage.

    Fields:
    - id: UUID PK
    - name
    - default_owner: user this family was bootstrapped for, if any.
      Unique, so a user can have at most one bootstrap family no matter
      how many first-login requests race.
    - created_at, updated_at
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    default_owner = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='default_family',
        help_text='Set only on families created by the default family bootstrap'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'family'
        verbose_name = 'Family'
        verbose_name_plural = 'Families'
        indexes = [
            models.Index(fields=['created_at'], name='idx_family_created'),
        ]

    def __str__(self):
        return self.name


class FamilyMember(models.Model):
    """
    (user, family) membership with a role.

    The role column is a plain string; values outside FamilyRoleChoices
    are treated as no membership at all by the permission evaluator.
    """
    family = models.ForeignKey(
        Family,
        on_delete=models.CASCADE,
        related_name='members'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='family_memberships'
    )
    role = models.CharField(
        max_length=20,
        choices=FamilyRoleChoices.choices
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'family_member'
        verbose_name = 'Family Member'
        verbose_name_plural = 'Family Members'
        unique_together = [('family', 'user')]
        indexes = [
            models.Index(fields=['user'], name='idx_family_member_user'),
            models.Index(fields=['family', 'role'], name='idx_family_member_role'),
        ]

    def __str__(self):
        return f"{self.user_id} in {self.family_id} ({self.role})"


class FamilyInvite(models.Model):
    """
    Single-use, expiring invitation to join a family.

    Only the SHA-256 of the token is stored; the raw token is returned
    once, at creation.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    family = models.ForeignKey(
        Family,
        on_delete=models.CASCADE,
        related_name='invites'
    )
    role = models.CharField(
        max_length=20,
        choices=FamilyRoleChoices.choices
    )
    token_hash = models.CharField(max_length=64, unique=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='family_invites_created'
    )
    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(null=True, blank=True)
    used_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='family_invites_used'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'family_invite'
        verbose_name = 'Family Invite'
        verbose_name_plural = 'Family Invites'
        indexes = [
            models.Index(fields=['family', 'used_at'], name='idx_family_invite_pending'),
            models.Index(fields=['expires_at'], name='idx_family_invite_expires'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"Invite to {self.family_id} as {self.role}"

    @property
    def is_used(self):
        return self.used_at is not None

    @property
    def is_expired(self):
        return self.expires_at <= timezone.now()
