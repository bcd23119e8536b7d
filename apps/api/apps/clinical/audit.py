"""
Audit event capture and history reconstruction for visits and illnesses.

Capture functions must run inside the transaction that performs the
mutation, so the change and its audit event commit or roll back
together:

    with transaction.atomic():
        before = snapshot_of(visit)
        ...mutate and save visit...
        capture_updated(visit, before, user=request.user)
"""
import logging
import uuid
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.clinical.field_diff import (
    ILLNESS_FIELDS,
    VISIT_FIELDS,
    changes_summary,
    created_changes,
    deleted_changes,
    snapshot,
    truncate_changes,
    updated_changes,
)
from apps.clinical.models import (
    AuditActionChoices,
    AuditEntityTypeChoices,
    AuditEvent,
    Illness,
    Visit,
)
from apps.core.observability import metrics
from apps.core.observability.correlation import get_request_id
from apps.core.observability.events import log_audit_event_recorded
from apps.families.services import as_uuid, can_access_child

logger = logging.getLogger(__name__)

ENTITY_MODELS = {
    AuditEntityTypeChoices.VISIT: (Visit, VISIT_FIELDS),
    AuditEntityTypeChoices.ILLNESS: (Illness, ILLNESS_FIELDS),
}


def entity_type_of(instance):
    for entity_type, (model, _) in ENTITY_MODELS.items():
        if isinstance(instance, model):
            return entity_type
    raise TypeError(f'{type(instance).__name__} is not an audited model')


def tracked_fields_of(entity_type):
    return ENTITY_MODELS[entity_type][1]


def snapshot_of(instance):
    """Tracked field values of instance; take this before mutating."""
    return snapshot(instance, tracked_fields_of(entity_type_of(instance)))


def _current_request_id():
    request_id = get_request_id()
    if not request_id:
        return None
    try:
        return uuid.UUID(str(request_id))
    except ValueError:
        return None


def _actor_id(user):
    if user is None or not getattr(user, 'is_authenticated', False):
        return None
    return user.pk


# ============================================================================
# Capture
# ============================================================================

def record_audit_event(entity_type, entity_id, action, changes, user=None):
    """
    Append one audit event.

    changed_at is kept strictly after the entity's previous event so the
    per-entity history has a total order even when the clock does not
    advance between two writes.
    """
    changes = truncate_changes(changes, settings.AUDIT_MAX_VALUE_LENGTH)

    with transaction.atomic():
        changed_at = timezone.now()
        previous = (
            AuditEvent.objects
            .filter(entity_type=entity_type, entity_id=entity_id)
            .order_by('-changed_at', '-id')
            .values_list('changed_at', flat=True)
            .first()
        )
        if previous is not None and changed_at <= previous:
            changed_at = previous + timedelta(microseconds=1)

        event = AuditEvent.objects.create(
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=_actor_id(user),
            action=action,
            changed_at=changed_at,
            request_id=_current_request_id(),
            changes=changes,
        )

    metrics.audit_events_created_total.labels(entity_type=entity_type, action=action).inc()
    log_audit_event_recorded(event)
    return event


def capture_created(instance, user=None):
    entity_type = entity_type_of(instance)
    fields = tracked_fields_of(entity_type)
    changes = created_changes(fields, snapshot(instance, fields))
    return record_audit_event(entity_type, instance.pk, AuditActionChoices.CREATED, changes, user)


def capture_updated(instance, before, user=None):
    """
    Record the fields that changed since `before` (from snapshot_of).

    Returns None and writes nothing when no tracked field changed.
    """
    entity_type = entity_type_of(instance)
    fields = tracked_fields_of(entity_type)
    changes = updated_changes(fields, before, snapshot(instance, fields))
    if not changes:
        metrics.audit_noop_updates_total.labels(entity_type=entity_type).inc()
        return None
    return record_audit_event(entity_type, instance.pk, AuditActionChoices.UPDATED, changes, user)


def capture_deleted(entity_type, entity_id, before, user=None):
    """Record a deletion; `before` is the snapshot taken while the row still existed."""
    changes = deleted_changes(tracked_fields_of(entity_type), before)
    return record_audit_event(entity_type, entity_id, AuditActionChoices.DELETED, changes, user)


# ============================================================================
# History
# ============================================================================

def clamp_page(page=None, page_size=None):
    """(page, page_size) with page >= 1 and 1 <= page_size <= HISTORY_MAX_PAGE_SIZE."""
    page = max(int(page or 1), 1)
    if page_size is None:
        page_size = settings.HISTORY_DEFAULT_PAGE_SIZE
    page_size = min(max(int(page_size), 1), settings.HISTORY_MAX_PAGE_SIZE)
    return page, page_size


def _history_queryset(entity_type, entity_id):
    return AuditEvent.objects.filter(entity_type=entity_type, entity_id=entity_id)


def history_of(entity_type, entity_id, page=1, page_size=None):
    """
    Audit events for one entity, most recent first.

    The acting user's username and email are joined at read time; when the
    user no longer exists user_id, user_name and user_email are None.
    """
    page, page_size = clamp_page(page, page_size)
    offset = (page - 1) * page_size

    with metrics.audit_history_duration_seconds.labels(entity_type=entity_type).time():
        events = list(
            _history_queryset(entity_type, entity_id)
            .select_related('user')
            .order_by('-changed_at', '-id')[offset:offset + page_size]
        )

    history = []
    for event in events:
        user = event.user
        history.append({
            'id': event.id,
            'entity_type': event.entity_type,
            'entity_id': event.entity_id,
            'user_id': user.pk if user else None,
            'user_name': (user.username or None) if user else None,
            'user_email': user.email if user else None,
            'action': event.action,
            'changed_at': event.changed_at,
            'request_id': event.request_id,
            'changes': event.changes,
            'summary': changes_summary(event.action, event.entity_type, event.changes),
        })
    return history


def history_count(entity_type, entity_id):
    return _history_queryset(entity_type, entity_id).count()


def can_view_audit_history(entity_type, entity_id, user_id):
    """The entity exists and its child is accessible to user_id."""
    if user_id is None or entity_type not in ENTITY_MODELS:
        return False
    model = ENTITY_MODELS[entity_type][0]
    entity_id = as_uuid(entity_id)
    if entity_id is None:
        return False
    child_id = model.objects.filter(pk=entity_id).values_list('child_id', flat=True).first()
    if child_id is None:
        return False
    return can_access_child(user_id, child_id)
