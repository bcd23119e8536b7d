"""
Core models: instance_settings
"""
import uuid
from django.db import models


class LogLevelChoices(models.TextChoices):
    """Runtime log levels an instance admin may select."""
    INFO = 'info', 'Info'
    DEBUG = 'debug', 'Debug'


class InstanceSettings(models.Model):
    """
    Global instance settings (single row).

    Fields:
    - id: UUID PK
    - registration_enabled: whether new accounts may self-register
      (the very first account is always allowed)
    - default_family_name: name given to families created by the
      default family bootstrap
    - log_level: runtime level for the `apps` logger hierarchy
    - created_at, updated_at
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    registration_enabled = models.BooleanField(default=True)
    default_family_name = models.CharField(max_length=255, default='My Family')
    log_level = models.CharField(
        max_length=10,
        choices=LogLevelChoices.choices,
        default=LogLevelChoices.INFO
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'instance_settings'
        verbose_name = 'Instance Settings'
        verbose_name_plural = 'Instance Settings'

    def __str__(self):
        state = 'open' if self.registration_enabled else 'closed'
        return f"Instance Settings (registration {state})"

    @classmethod
    def load(cls, for_update=False):
        """
        Return the settings row, creating it with defaults on first access.

        With for_update=True the row is locked until the surrounding
        transaction ends; callers must be inside transaction.atomic().
        """
        instance = cls.objects.order_by('created_at').first()
        if instance is None:
            instance = cls.objects.create()
        if for_update:
            instance = cls.objects.select_for_update().get(pk=instance.pk)
        return instance
