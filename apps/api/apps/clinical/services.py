"""
Clinical record services.

Join-table maintenance for illness types, visit-originated illnesses,
optimistic locking and cascade-aware deletes. Every write helper here
expects to run inside the caller's transaction so that audit events
commit with the change they describe.
"""
import datetime
import logging
from typing import Iterable, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework.exceptions import ValidationError

from apps.clinical.audit import (
    capture_created,
    capture_deleted,
    capture_updated,
    entity_type_of,
    snapshot_of,
)
from apps.clinical.models import (
    AuditEntityTypeChoices,
    Child,
    Illness,
    IllnessTypeEntry,
    Visit,
    VisitIllness,
    VisitTypeChoices,
)
from apps.core.exceptions import ConflictError
from apps.core.observability import log_domain_event

logger = logging.getLogger(__name__)


def _unique_in_order(values: Iterable[str]) -> List[str]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def replace_illness_types(illness: Illness, illness_types: Iterable[str]) -> None:
    """Replace the full set of illness types; insertion order is preserved."""
    IllnessTypeEntry.objects.filter(illness=illness).delete()
    IllnessTypeEntry.objects.bulk_create([
        IllnessTypeEntry(illness=illness, illness_type=illness_type)
        for illness_type in _unique_in_order(illness_types)
    ])


def replace_visit_illnesses(visit: Visit, illness_types: Iterable[str]) -> None:
    VisitIllness.objects.filter(visit=visit).delete()
    VisitIllness.objects.bulk_create([
        VisitIllness(visit=visit, illness_type=illness_type)
        for illness_type in _unique_in_order(illness_types)
    ])


def create_illness_from_visit(visit: Visit, severity: Optional[int], user=None) -> Optional[Illness]:
    """
    Create one Illness from a sick visit carrying illness types.

    Returns None (and creates nothing) for other visit types or when the
    visit records no illness types. The new illness gets its own
    `created` audit event.
    """
    illness_types = visit.illnesses
    if visit.visit_type != VisitTypeChoices.SICK or not illness_types:
        return None

    illness = Illness.objects.create(
        child_id=visit.child_id,
        start_date=visit.illness_start_date or visit.visit_date,
        end_date=visit.end_date,
        symptoms=visit.symptoms,
        temperature=visit.temperature,
        severity=severity,
        visit=visit,
        notes=visit.notes,
    )
    replace_illness_types(illness, illness_types)
    capture_created(illness, user=user)

    log_domain_event(
        'illness_created_from_visit',
        entity_type='illness',
        entity_id=str(illness.id),
        entity_ids={'visit_id': str(visit.id), 'child_id': str(visit.child_id)},
    )
    return illness


# ============================================================================
# Optimistic locking
# ============================================================================

def check_updated_at(instance, provided) -> None:
    """
    Reject a write based on a stale read.

    `provided` is the updated_at the client last saw (ISO 8601 string).
    A difference above OPTIMISTIC_LOCK_TOLERANCE_MS raises ConflictError.
    Nothing is checked when the client does not send a version.
    """
    if provided in (None, ''):
        return

    provided_at = parse_datetime(str(provided))
    if provided_at is None:
        raise ValidationError({'updated_at': 'Enter a valid ISO 8601 datetime.'})
    if timezone.is_naive(provided_at):
        provided_at = timezone.make_aware(provided_at, datetime.timezone.utc)

    drift_ms = abs((instance.updated_at - provided_at).total_seconds()) * 1000
    if drift_ms > settings.OPTIMISTIC_LOCK_TOLERANCE_MS:
        raise ConflictError(
            f'This {entity_type_of(instance)} was modified by someone else. Reload and try again.',
            current_version=instance.updated_at.isoformat(),
            your_version=provided,
        )


# ============================================================================
# Deletes
# ============================================================================

def delete_visit(visit: Visit, user=None) -> None:
    """
    Delete a visit and audit it.

    Illnesses that originated from the visit lose their link; that is a
    change to the illness and is audited as an update.
    """
    with transaction.atomic():
        visit_before = snapshot_of(visit)
        linked = [(illness, snapshot_of(illness)) for illness in visit.originated_illnesses.all()]
        visit_id = visit.pk

        visit.delete()

        capture_deleted(AuditEntityTypeChoices.VISIT, visit_id, visit_before, user=user)
        for illness, before in linked:
            illness.refresh_from_db()
            capture_updated(illness, before, user=user)


def delete_illness(illness: Illness, user=None) -> None:
    with transaction.atomic():
        before = snapshot_of(illness)
        illness_id = illness.pk
        illness.delete()
        capture_deleted(AuditEntityTypeChoices.ILLNESS, illness_id, before, user=user)


def delete_child(child: Child, user=None) -> None:
    """
    Delete a child with all descendant records.

    Each cascaded visit and illness gets its own `deleted` audit event.
    """
    with transaction.atomic():
        illnesses = [(illness.pk, snapshot_of(illness)) for illness in child.illnesses.all()]
        visits = [(visit.pk, snapshot_of(visit)) for visit in child.visits.all()]
        child_id = child.pk

        child.delete()

        for illness_id, before in illnesses:
            capture_deleted(AuditEntityTypeChoices.ILLNESS, illness_id, before, user=user)
        for visit_id, before in visits:
            capture_deleted(AuditEntityTypeChoices.VISIT, visit_id, before, user=user)

    log_domain_event(
        'child_deleted',
        entity_type='Child',
        entity_id=str(child_id),
        entity_ids={'actor_user_id': str(user.pk) if user else None},
        cascaded_visits=len(visits),
        cascaded_illnesses=len(illnesses),
    )
