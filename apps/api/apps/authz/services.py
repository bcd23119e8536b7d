"""
Instance admin gate and account registration.
"""
import logging
from typing import Optional

from django.db import transaction

from apps.authz.models import User, UserAuditLog, UserAuditActionChoices
from apps.core.models import InstanceSettings
from apps.core.observability import metrics

logger = logging.getLogger(__name__)


class RegistrationClosedError(Exception):
    """Raised when self-registration is disabled for this instance."""
    pass


def get_is_instance_admin(user_id) -> bool:
    """
    Re-read the instance admin flag for user_id.

    Never trusts an in-memory user object, so a revoked flag takes effect
    on the next call. Inactive or unknown accounts are never admins.
    """
    if user_id is None:
        return False
    flag = (
        User.objects
        .filter(pk=user_id, is_active=True)
        .values_list('is_instance_admin', flat=True)
        .first()
    )
    return bool(flag)


def register_user(email: str, password: str, username: Optional[str] = None, ip_address=None) -> User:
    """
    Create an account.

    The first account on an instance becomes instance admin and is
    accepted even when registration is disabled. The settings row is
    locked so two concurrent first registrations cannot both see an
    empty user table.

    Raises:
        RegistrationClosedError: registration disabled and users exist
    """
    with transaction.atomic():
        instance_settings = InstanceSettings.load(for_update=True)
        is_first_user = not User.objects.exists()

        if not is_first_user and not instance_settings.registration_enabled:
            metrics.registrations_total.labels(result='disabled').inc()
            raise RegistrationClosedError('Registration is disabled on this instance.')

        user = User.objects.create_user(
            email=email,
            password=password,
            username=username or '',
            is_instance_admin=is_first_user,
        )

        UserAuditLog.objects.create(
            actor_user=None,
            target_user=user,
            action=UserAuditActionChoices.CREATE_USER,
            metadata={
                'self_registration': True,
                'is_instance_admin': is_first_user,
                'ip_address': ip_address,
            }
        )

    metrics.registrations_total.labels(result='first_user' if is_first_user else 'created').inc()
    logger.info(
        'User registered',
        extra={
            'event': 'user_registered',
            'target_user_id': str(user.id),
            'first_user': is_first_user,
        }
    )
    return user
