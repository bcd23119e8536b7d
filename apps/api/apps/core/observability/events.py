"""
Domain events logging helpers.

Provides structured event logging for family access and audit operations.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'family_created', 'audit_event_recorded')
        entity_type: Type of entity (e.g., 'Family', 'visit')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, warning, blocked, ...)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'family_member_removed',
            entity_type='Family',
            entity_id=str(family.id),
            entity_ids={'target_user_id': str(user.id)},
            result='success',
            self_removal=True
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'denied']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_access_denied(user_id, child_id, reason):
    """Log a refused child-scoped request (no_relationship | read_only)."""
    log_domain_event(
        'family_access_denied',
        entity_type='Child',
        entity_id=str(child_id),
        entity_ids={'actor_user_id': str(user_id)},
        result='denied',
        reason=reason,
    )


def log_unknown_role(family_id, user_id, role):
    """Log a membership row whose role is outside the known set."""
    log_domain_event(
        'family_unknown_role',
        entity_type='Family',
        entity_id=str(family_id),
        entity_ids={'member_user_id': str(user_id)},
        result='warning',
        stored_role=str(role)[:50],
    )


def log_default_family_bootstrap(user_id, family_id, outcome):
    """Log the outcome of the default family bootstrap (existing | created | recovered)."""
    log_domain_event(
        'default_family_bootstrap',
        entity_type='Family',
        entity_id=str(family_id),
        entity_ids={'owner_user_id': str(user_id)},
        result='warning' if outcome == 'recovered' else 'success',
        outcome=outcome,
    )


def log_audit_event_recorded(event):
    """Log an audit event write; only field names are logged, never values."""
    log_domain_event(
        'audit_event_recorded',
        entity_type=event.entity_type,
        entity_id=str(event.entity_id),
        entity_ids={'audit_event_id': str(event.pk)},
        result='success',
        action=event.action,
        changed_fields=sorted(event.changes.keys()),
    )
