"""
Tests for Visit API endpoints.
"""
import datetime
import uuid

import pytest
from rest_framework import status

from apps.clinical.models import AuditEvent, Illness, Visit
from apps.families.models import FamilyMember, FamilyRoleChoices


def visit_payload(child, **fields):
    payload = {
        'child': str(child.id),
        'visit_date': '2024-02-01',
        'visit_type': 'wellness',
    }
    payload.update(fields)
    return payload


@pytest.mark.django_db
class TestVisitPermissions:

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('owner_client', status.HTTP_201_CREATED),
        ('parent_client', status.HTTP_201_CREATED),
        ('read_only_client', status.HTTP_403_FORBIDDEN),
        ('outsider_client', status.HTTP_404_NOT_FOUND),
    ])
    def test_create(self, request, child, client_fixture, expected_status):
        client = request.getfixturevalue(client_fixture)
        response = client.post('/api/v1/visits/', visit_payload(child), format='json')

        assert response.status_code == expected_status
        if expected_status != status.HTTP_201_CREATED:
            assert not Visit.objects.exists()
            assert not AuditEvent.objects.exists()

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('owner_client', status.HTTP_200_OK),
        ('parent_client', status.HTTP_200_OK),
        ('read_only_client', status.HTTP_403_FORBIDDEN),
        ('outsider_client', status.HTTP_404_NOT_FOUND),
    ])
    def test_update(self, request, visit, client_fixture, expected_status):
        client = request.getfixturevalue(client_fixture)
        response = client.patch(f'/api/v1/visits/{visit.id}/', {'notes': 'Follow up'}, format='json')

        assert response.status_code == expected_status
        if expected_status != status.HTTP_200_OK:
            assert not AuditEvent.objects.exists()

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('owner_client', status.HTTP_204_NO_CONTENT),
        ('parent_client', status.HTTP_204_NO_CONTENT),
        ('read_only_client', status.HTTP_403_FORBIDDEN),
        ('outsider_client', status.HTTP_404_NOT_FOUND),
    ])
    def test_delete(self, request, visit, client_fixture, expected_status):
        client = request.getfixturevalue(client_fixture)
        response = client.delete(f'/api/v1/visits/{visit.id}/')
        assert response.status_code == expected_status

    def test_create_for_other_family_child_is_404(self, owner_client, child, other_child):
        response = owner_client.post('/api/v1/visits/', visit_payload(other_child), format='json')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_create_for_missing_child_is_404(self, owner_client, child):
        payload = {**visit_payload(child), 'child': str(uuid.uuid4())}
        response = owner_client.post('/api/v1/visits/', payload, format='json')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_malformed_child_id_is_400(self, owner_client, child):
        payload = {**visit_payload(child), 'child': 'not-a-uuid'}
        response = owner_client.post('/api/v1/visits/', payload, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_visit_cannot_be_moved_to_another_child(self, owner_client, owner_user, visit, other_child):
        FamilyMember.objects.create(family=other_child.family, user=owner_user, role=FamilyRoleChoices.PARENT)

        response = owner_client.patch(
            f'/api/v1/visits/{visit.id}/', {'child': str(other_child.id)}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'child' in response.data
        visit.refresh_from_db()
        assert visit.child_id != other_child.id
        assert not AuditEvent.objects.exists()

    def test_sending_current_child_on_update_is_accepted(self, owner_client, visit, child):
        response = owner_client.patch(
            f'/api/v1/visits/{visit.id}/', {'child': str(child.id), 'doctor_name': 'Dr. Lee'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        event = AuditEvent.objects.get(entity_id=visit.id, action='updated')
        assert list(event.changes) == ['doctor_name']

    def test_list_never_includes_other_family_visits(self, owner_client, child, visit, other_child):
        Visit.objects.create(child=other_child, visit_date=datetime.date(2024, 1, 1), visit_type='sick')

        response = owner_client.get('/api/v1/visits/')
        assert [item['id'] for item in response.data['results']] == [str(visit.id)]

        response = owner_client.get('/api/v1/visits/', {'child_id': str(other_child.id)})
        assert response.data['results'] == []

    def test_instance_admin_has_no_access_to_child_data(self, instance_admin_client, visit):
        assert instance_admin_client.get(f'/api/v1/visits/{visit.id}/').status_code == status.HTTP_404_NOT_FOUND
        assert instance_admin_client.get('/api/v1/visits/').data['results'] == []


@pytest.mark.django_db
class TestVisitFilters:

    @pytest.fixture
    def visits(self, child):
        return [
            Visit.objects.create(child=child, visit_date=datetime.date(2024, 1, 5), visit_type='wellness'),
            Visit.objects.create(child=child, visit_date=datetime.date(2024, 3, 5), visit_type='sick'),
            Visit.objects.create(child=child, visit_date=datetime.date(2024, 6, 5), visit_type='dental'),
        ]

    def test_filter_by_type(self, owner_client, visits):
        response = owner_client.get('/api/v1/visits/', {'visit_type': 'sick'})
        assert [item['id'] for item in response.data['results']] == [str(visits[1].id)]

    def test_filter_by_date_range(self, owner_client, visits):
        response = owner_client.get('/api/v1/visits/', {'start_date': '2024-02-01', 'end_date': '2024-12-31'})
        assert [item['id'] for item in response.data['results']] == [str(visits[2].id), str(visits[1].id)]

    def test_invalid_date_filter(self, owner_client, visits):
        response = owner_client.get('/api/v1/visits/', {'start_date': '02/01/2024'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestVisitValidation:

    def test_illness_start_after_visit_date(self, owner_client, child):
        payload = visit_payload(child, visit_type='sick', illness_start_date='2024-02-05')
        response = owner_client.post('/api/v1/visits/', payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'illness_start_date' in response.data

    def test_more_cavities_filled_than_found(self, owner_client, child):
        payload = visit_payload(child, visit_type='dental', cavities_found=1, cavities_filled=2)
        response = owner_client.post('/api/v1/visits/', payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'cavities_filled' in response.data

    def test_partial_update_is_checked_against_stored_values(self, owner_client, visit):
        response = owner_client.patch(
            f'/api/v1/visits/{visit.id}/',
            {'illness_start_date': '2024-01-20'},
            format='json'
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_illness_type(self, owner_client, child):
        payload = visit_payload(child, visit_type='sick', illnesses=['dragon_pox'])
        response = owner_client.post('/api/v1/visits/', payload, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_temperature_range(self, owner_client, child):
        payload = visit_payload(child, visit_type='sick', temperature='120.0')
        response = owner_client.post('/api/v1/visits/', payload, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestOptimisticLocking:

    def test_matching_version_is_accepted(self, owner_client, visit):
        response = owner_client.patch(
            f'/api/v1/visits/{visit.id}/',
            {'notes': 'Updated', 'updated_at': visit.updated_at.isoformat()},
            format='json'
        )
        assert response.status_code == status.HTTP_200_OK

    def test_version_from_previous_response_is_accepted(self, owner_client, visit):
        current = owner_client.get(f'/api/v1/visits/{visit.id}/').data

        response = owner_client.patch(
            f'/api/v1/visits/{visit.id}/',
            {'notes': 'Updated', 'updated_at': current['updated_at']},
            format='json'
        )
        assert response.status_code == status.HTTP_200_OK

    def test_stale_version_is_409(self, owner_client, visit):
        stale = (visit.updated_at - datetime.timedelta(seconds=5)).isoformat()

        response = owner_client.patch(
            f'/api/v1/visits/{visit.id}/',
            {'notes': 'Lost update', 'updated_at': stale},
            format='json'
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['current_version'] == visit.updated_at.isoformat()
        assert response.data['your_version'] == stale
        visit.refresh_from_db()
        assert visit.notes == 'Initial notes'
        assert not AuditEvent.objects.exists()

    def test_second_writer_with_old_version_conflicts(self, owner_client, parent_client, visit):
        version = owner_client.get(f'/api/v1/visits/{visit.id}/').data['updated_at']

        first = parent_client.patch(
            f'/api/v1/visits/{visit.id}/', {'notes': 'Parent edit', 'updated_at': version}, format='json'
        )
        assert first.status_code == status.HTTP_200_OK

        # Push the stored version well past the tolerance window
        Visit.objects.filter(pk=visit.pk).update(updated_at=visit.updated_at + datetime.timedelta(seconds=10))

        second = owner_client.patch(
            f'/api/v1/visits/{visit.id}/', {'notes': 'Owner edit', 'updated_at': version}, format='json'
        )
        assert second.status_code == status.HTTP_409_CONFLICT

    def test_invalid_version_is_400(self, owner_client, visit):
        response = owner_client.patch(
            f'/api/v1/visits/{visit.id}/',
            {'notes': 'x', 'updated_at': 'yesterday'},
            format='json'
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestVisitOriginatedIllness:

    def test_sick_visit_creates_linked_illness(self, owner_client, child):
        payload = visit_payload(
            child,
            visit_type='sick',
            symptoms='Fever, rash',
            temperature='102.3',
            illness_start_date='2024-01-29',
            illnesses=['flu', 'strep'],
            create_illness=True,
            illness_severity=7,
        )

        response = owner_client.post('/api/v1/visits/', payload, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['illnesses'] == ['flu', 'strep']
        assert 'create_illness' not in response.data

        illness = Illness.objects.get(visit_id=response.data['id'])
        assert illness.illness_types == ['flu', 'strep']
        assert illness.severity == 7
        assert illness.start_date == datetime.date(2024, 1, 29)
        assert illness.symptoms == 'Fever, rash'

        created = AuditEvent.objects.filter(action='created')
        assert set(created.values_list('entity_type', flat=True)) == {'visit', 'illness'}
        illness_event = created.get(entity_type='illness')
        assert illness_event.changes['visit_id']['after'] == response.data['id']

    def test_non_sick_visit_creates_no_illness(self, owner_client, child):
        payload = visit_payload(child, visit_type='wellness', create_illness=True)
        response = owner_client.post('/api/v1/visits/', payload, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert not Illness.objects.exists()

    def test_sick_visit_without_illness_types_creates_no_illness(self, owner_client, child):
        payload = visit_payload(child, visit_type='sick', create_illness=True)
        owner_client.post('/api/v1/visits/', payload, format='json')
        assert not Illness.objects.exists()

    def test_deleting_visit_unlinks_and_audits_illness(self, owner_client, child):
        payload = visit_payload(child, visit_type='sick', illnesses=['cold'], create_illness=True)
        visit_id = owner_client.post('/api/v1/visits/', payload, format='json').data['id']
        illness = Illness.objects.get(visit_id=visit_id)

        response = owner_client.delete(f'/api/v1/visits/{visit_id}/')

        assert response.status_code == status.HTTP_204_NO_CONTENT
        illness.refresh_from_db()
        assert illness.visit_id is None

        unlinked = AuditEvent.objects.get(entity_type='illness', entity_id=illness.id, action='updated')
        assert unlinked.changes == {'visit_id': {'before': visit_id, 'after': None}}
        assert AuditEvent.objects.filter(entity_type='visit', entity_id=visit_id, action='deleted').exists()
