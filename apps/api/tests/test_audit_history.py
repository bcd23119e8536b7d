"""
Tests for audit event capture, immutability and history reconstruction.
"""
import uuid
from unittest.mock import patch

import pytest
from django.utils import timezone

from apps.clinical.audit import (
    can_view_audit_history,
    capture_created,
    capture_updated,
    clamp_page,
    history_count,
    history_of,
    record_audit_event,
    snapshot_of,
)
from apps.clinical.models import AuditEvent, AuditEventImmutableError, Visit
from apps.core.observability.metrics import metrics


def _create_visit(client, child, **fields):
    payload = {
        'child': str(child.id),
        'visit_date': '2024-01-10',
        'visit_type': 'sick',
    }
    payload.update(fields)
    response = client.post('/api/v1/visits/', payload, format='json')
    assert response.status_code == 201, response.data
    return response.data


@pytest.mark.django_db
class TestAuditCapture:

    def test_scenario_c_created_then_updated_symptoms(self, owner_client, owner_user, child):
        visit = _create_visit(owner_client, child, symptoms='cough')

        response = owner_client.patch(
            f"/api/v1/visits/{visit['id']}/",
            {'symptoms': 'cough, fever'},
            format='json'
        )
        assert response.status_code == 200

        history = history_of('visit', visit['id'])
        assert [event['action'] for event in history] == ['updated', 'created']

        updated, created = history
        assert created['changes']['symptoms'] == {'before': None, 'after': 'cough'}
        assert updated['changes']['symptoms'] == {'before': 'cough', 'after': 'cough, fever'}
        assert updated['user_id'] == owner_user.pk
        assert updated['user_name'] == 'Olivia'
        assert updated['user_email'] == 'owner@test.com'

    def test_update_touching_only_notes_records_only_notes(self, owner_client, child):
        visit = _create_visit(owner_client, child, symptoms='cough', notes='first')

        owner_client.patch(f"/api/v1/visits/{visit['id']}/", {'notes': 'second'}, format='json')

        event = AuditEvent.objects.filter(entity_id=visit['id'], action='updated').get()
        assert list(event.changes.keys()) == ['notes']
        assert event.changes['notes'] == {'before': 'first', 'after': 'second'}

    def test_resending_same_values_writes_no_event(self, owner_client, child):
        visit = _create_visit(owner_client, child, temperature='101.5', symptoms='cough')
        noop_before = metrics.audit_noop_updates_total.labels(entity_type='visit')._value.get()

        response = owner_client.patch(
            f"/api/v1/visits/{visit['id']}/",
            {'temperature': 101.5, 'symptoms': '  cough  ', 'visit_date': '2024-01-10'},
            format='json'
        )

        assert response.status_code == 200
        assert AuditEvent.objects.filter(entity_id=visit['id']).count() == 1
        assert metrics.audit_noop_updates_total.labels(entity_type='visit')._value.get() == noop_before + 1

    def test_created_event_omits_empty_fields(self, owner_client, child):
        visit = _create_visit(owner_client, child, symptoms='cough', notes='', tags=[])

        event = AuditEvent.objects.get(entity_id=visit['id'])
        assert event.action == 'created'
        assert set(event.changes) == {'visit_date', 'visit_type', 'symptoms'}

    def test_visit_illnesses_are_compared_as_a_set(self, owner_client, child):
        visit = _create_visit(owner_client, child, illnesses=['flu', 'cold'])

        owner_client.patch(f"/api/v1/visits/{visit['id']}/", {'illnesses': ['cold', 'flu']}, format='json')
        assert AuditEvent.objects.filter(entity_id=visit['id']).count() == 1

        owner_client.patch(f"/api/v1/visits/{visit['id']}/", {'illnesses': ['cold']}, format='json')
        event = AuditEvent.objects.filter(entity_id=visit['id'], action='updated').get()
        assert event.changes == {'illnesses': {'before': ['cold', 'flu'], 'after': ['cold']}}

    def test_long_values_are_truncated_before_storage(self, owner_client, child):
        visit = _create_visit(owner_client, child, notes='x' * 1200)

        event = AuditEvent.objects.get(entity_id=visit['id'])
        assert event.changes['notes']['after'] == 'x' * 1000 + '...'

    def test_deleted_event_captures_last_values(self, owner_client, child):
        visit = _create_visit(owner_client, child, symptoms='cough')

        response = owner_client.delete(f"/api/v1/visits/{visit['id']}/")
        assert response.status_code == 204

        event = AuditEvent.objects.filter(entity_id=visit['id'], action='deleted').get()
        assert event.changes['symptoms'] == {'before': 'cough', 'after': None}
        assert history_count('visit', visit['id']) == 2

    def test_request_id_is_recorded(self, owner_client, child):
        request_id = uuid.uuid4()

        response = owner_client.post(
            '/api/v1/visits/',
            {'child': str(child.id), 'visit_date': '2024-01-10', 'visit_type': 'wellness'},
            format='json',
            HTTP_X_REQUEST_ID=str(request_id),
        )

        assert response.status_code == 201
        assert response['X-Request-ID'] == str(request_id)
        assert AuditEvent.objects.get(entity_id=response.data['id']).request_id == request_id

    def test_non_uuid_request_id_is_not_stored(self, owner_client, child):
        response = owner_client.post(
            '/api/v1/visits/',
            {'child': str(child.id), 'visit_date': '2024-01-10', 'visit_type': 'wellness'},
            format='json',
            HTTP_X_REQUEST_ID='req-123',
        )

        assert AuditEvent.objects.get(entity_id=response.data['id']).request_id is None

    def test_changed_at_is_strictly_increasing_when_clock_stalls(self, visit, owner_user):
        frozen = timezone.now()

        with patch('django.utils.timezone.now', return_value=frozen):
            events = [
                record_audit_event('visit', visit.id, 'updated', {'notes': {'before': str(i), 'after': str(i + 1)}}, owner_user)
                for i in range(3)
            ]

        assert events[0].changed_at == frozen
        assert events[1].changed_at > events[0].changed_at
        assert events[2].changed_at > events[1].changed_at

    def test_service_level_capture(self, visit, owner_user):
        capture_created(visit, user=owner_user)

        before = snapshot_of(visit)
        visit.notes = 'Changed notes'
        visit.save()
        event = capture_updated(visit, before, user=owner_user)

        assert event.changes == {'notes': {'before': 'Initial notes', 'after': 'Changed notes'}}
        assert capture_updated(visit, snapshot_of(visit), user=owner_user) is None


@pytest.mark.django_db
class TestAuditImmutability:

    @pytest.fixture
    def event(self, visit, owner_user):
        return capture_created(visit, user=owner_user)

    def test_save_existing_event_raises(self, event):
        event.action = 'deleted'
        with pytest.raises(AuditEventImmutableError):
            event.save()

    def test_delete_event_raises(self, event):
        with pytest.raises(AuditEventImmutableError):
            event.delete()

    def test_bulk_update_and_delete_raise(self, event):
        with pytest.raises(AuditEventImmutableError):
            AuditEvent.objects.filter(pk=event.pk).update(action='deleted')
        with pytest.raises(AuditEventImmutableError):
            AuditEvent.objects.filter(pk=event.pk).delete()

    def test_deleting_user_keeps_event_without_attribution(self, event, visit, user_factory):
        actor = user_factory()
        record_audit_event('visit', visit.id, 'updated', {'notes': {'before': 'a', 'after': 'b'}}, actor)

        actor.delete()

        latest = history_of('visit', visit.id)[0]
        assert latest['action'] == 'updated'
        assert latest['user_id'] is None
        assert latest['user_name'] is None
        assert latest['user_email'] is None
        assert AuditEvent.objects.filter(entity_id=visit.id).count() == 2


@pytest.mark.django_db
class TestHistoryReconstruction:

    def test_n_updates_give_n_plus_one_events_across_pages(self, owner_client, child):
        visit = _create_visit(owner_client, child, notes='v0')
        updates = 5
        for i in range(1, updates + 1):
            response = owner_client.patch(f"/api/v1/visits/{visit['id']}/", {'notes': f'v{i}'}, format='json')
            assert response.status_code == 200

        events = []
        page = 1
        while True:
            batch = history_of('visit', visit['id'], page=page, page_size=2)
            if not batch:
                break
            events.extend(batch)
            page += 1

        assert len(events) == updates + 1
        assert [e['action'] for e in events] == ['updated'] * updates + ['created']
        changed_at = [e['changed_at'] for e in events]
        assert all(a > b for a, b in zip(changed_at, changed_at[1:]))
        assert history_count('visit', visit['id']) == updates + 1

    def test_history_endpoint(self, owner_client, child):
        visit = _create_visit(owner_client, child, symptoms='cough')
        owner_client.patch(f"/api/v1/visits/{visit['id']}/", {'symptoms': 'cough, fever'}, format='json')

        response = owner_client.get(f"/api/v1/visits/{visit['id']}/history/")

        assert response.status_code == 200
        assert response.data['count'] == 2
        assert response.data['page'] == 1
        assert response.data['page_size'] == 50
        first = response.data['results'][0]
        assert first['action'] == 'updated'
        assert first['summary'] == 'Updated symptoms'
        assert first['entity_type'] == 'visit'
        assert response.data['results'][1]['summary'] == 'Created visit'

    def test_history_endpoint_paging_and_limit_alias(self, owner_client, child):
        visit = _create_visit(owner_client, child, notes='v0')
        for i in range(1, 4):
            owner_client.patch(f"/api/v1/visits/{visit['id']}/", {'notes': f'v{i}'}, format='json')

        response = owner_client.get(f"/api/v1/visits/{visit['id']}/history/", {'limit': 3, 'page': 2})

        assert response.data['count'] == 4
        assert response.data['page_size'] == 3
        assert len(response.data['results']) == 1
        assert response.data['results'][0]['action'] == 'created'

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('owner_client', 200),
        ('parent_client', 200),
        ('read_only_client', 200),
        ('outsider_client', 404),
    ])
    def test_history_visibility(self, request, child, visit, client_fixture, expected_status):
        client = request.getfixturevalue(client_fixture)
        response = client.get(f'/api/v1/visits/{visit.id}/history/')
        assert response.status_code == expected_status

    def test_illness_history(self, owner_client, child):
        response = owner_client.post(
            '/api/v1/illnesses/',
            {'child': str(child.id), 'illness_types': ['flu'], 'start_date': '2024-01-01', 'severity': 3},
            format='json'
        )
        illness_id = response.data['id']
        owner_client.patch(f'/api/v1/illnesses/{illness_id}/', {'severity': 6}, format='json')

        response = owner_client.get(f'/api/v1/illnesses/{illness_id}/history/')

        assert response.status_code == 200
        assert response.data['count'] == 2
        assert response.data['results'][0]['changes'] == {'severity': {'before': 3, 'after': 6}}

    def test_history_survives_entity_deletion(self, owner_client, child):
        visit = _create_visit(owner_client, child, symptoms='cough')
        owner_client.delete(f"/api/v1/visits/{visit['id']}/")

        assert [e['action'] for e in history_of('visit', visit['id'])] == ['deleted', 'created']
        response = owner_client.get(f"/api/v1/visits/{visit['id']}/history/")
        assert response.status_code == 404

    @pytest.mark.parametrize('page,page_size,expected', [
        (None, None, (1, 50)),
        (0, 10, (1, 10)),
        (3, 1000, (3, 200)),
        (2, 0, (2, 1)),
    ])
    def test_clamp_page(self, page, page_size, expected):
        assert clamp_page(page, page_size) == expected


@pytest.mark.django_db
class TestCanViewAuditHistory:

    @pytest.mark.parametrize('user_fixture,expected', [
        ('owner_user', True),
        ('read_only_user', True),
        ('outsider_user', False),
    ])
    def test_by_membership(self, request, visit, other_family, user_fixture, expected):
        user = request.getfixturevalue(user_fixture)
        assert can_view_audit_history('visit', visit.id, user.pk) is expected

    def test_missing_or_unknown_entity(self, owner_user, visit):
        assert can_view_audit_history('visit', uuid.uuid4(), owner_user.pk) is False
        assert can_view_audit_history('measurement', visit.id, owner_user.pk) is False
        assert can_view_audit_history('visit', 'bogus', owner_user.pk) is False
        assert can_view_audit_history('visit', visit.id, None) is False

    def test_deleted_entity(self, owner_user, visit):
        visit_id = visit.id
        Visit.objects.filter(pk=visit_id).delete()
        assert can_view_audit_history('visit', visit_id, owner_user.pk) is False
