"""
Authz models: auth_user, user_audit_log
"""
import uuid
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin


# ============================================================================
# User Management
# ============================================================================

class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email is required')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('is_instance_admin', True)
        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Account identity.

    Fields:
    - id: UUID PK
    - email: unique, login identifier
    - username: display name shown in family member lists and change history
    - is_instance_admin: global flag for user/instance administration;
      grants nothing on family-scoped child data
    - is_active: accounts are deactivated, never hard-deleted by the API
    - created_at, updated_at
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, max_length=255)
    username = models.CharField(max_length=150, blank=True, help_text='Display name')
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)  # Required for Django admin access
    is_instance_admin = models.BooleanField(
        default=False,
        help_text='May manage users and instance settings. Not a family role.'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'auth_user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=['email'], name='idx_user_email'),
            models.Index(fields=['is_active'], name='idx_user_active'),
        ]

    def __str__(self):
        return self.email

    @property
    def display_name(self):
        return self.username or self.email


# ============================================================================
# User Administration Audit Log
# ============================================================================

class UserAuditActionChoices(models.TextChoices):
    """Actions that can be audited for user administration."""
    CREATE_USER = 'create_user', 'Create User'
    UPDATE_USER = 'update_user', 'Update User'
    GRANT_INSTANCE_ADMIN = 'grant_admin', 'Grant Instance Admin'
    REVOKE_INSTANCE_ADMIN = 'revoke_admin', 'Revoke Instance Admin'
    DEACTIVATE_USER = 'deactivate_user', 'Deactivate User'
    ACTIVATE_USER = 'activate_user', 'Activate User'


class UserAuditLog(models.Model):
    """
    Audit trail for user administration actions.

    Fields:
    - id: UUID PK
    - created_at: timestamp of action
    - actor_user: admin who made the change (null for self-registration)
    - target_user: user being modified
    - action: see UserAuditActionChoices
    - metadata: JSON with before/after values, changed fields, IP
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)

    actor_user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='admin_actions',
        help_text='Admin user who performed the action'
    )

    target_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='audit_logs',
        help_text='User who was affected by the action'
    )

    action = models.CharField(
        max_length=20,
        choices=UserAuditActionChoices.choices
    )

    metadata = models.JSONField(
        default=dict,
        help_text='Changed fields, before/after values, IP address'
    )

    class Meta:
        db_table = 'user_audit_log'
        verbose_name = 'User Audit Log'
        verbose_name_plural = 'User Audit Logs'
        indexes = [
            models.Index(fields=['created_at'], name='idx_user_audit_created'),
            models.Index(fields=['actor_user'], name='idx_user_audit_actor'),
            models.Index(fields=['target_user'], name='idx_user_audit_target'),
            models.Index(fields=['action'], name='idx_user_audit_action'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        actor = self.actor_user.email if self.actor_user else 'system'
        target = self.target_user.email if self.target_user else 'unknown'
        return f"{self.action} on {target} by {actor}"
