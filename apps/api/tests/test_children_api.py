"""
Tests for Child API endpoints and the 404-vs-403 policy.
"""
import uuid

import pytest
from rest_framework import status

from apps.clinical.models import AuditEvent, Child, Illness, Visit
from apps.families.models import FamilyMember, FamilyRoleChoices


@pytest.mark.django_db
class TestChildList:

    def test_lists_only_accessible_children(self, owner_client, child, other_child):
        response = owner_client.get('/api/v1/children/')

        assert response.status_code == status.HTTP_200_OK
        ids = [item['id'] for item in response.data['results']]
        assert ids == [str(child.id)]
        assert response.data['count'] == 1

    def test_outsider_sees_only_their_family(self, outsider_client, child, other_child):
        response = outsider_client.get('/api/v1/children/')
        assert [item['id'] for item in response.data['results']] == [str(other_child.id)]

    def test_can_edit_reflects_role(self, owner_client, read_only_client, child):
        assert owner_client.get('/api/v1/children/').data['results'][0]['can_edit'] is True
        assert read_only_client.get('/api/v1/children/').data['results'][0]['can_edit'] is False

    def test_filter_by_family(self, owner_client, owner_user, child, other_family):
        FamilyMember.objects.create(family=other_family, user=owner_user, role=FamilyRoleChoices.READ_ONLY)
        other = Child.objects.create(family=other_family, name='Zed', date_of_birth='2018-01-01', gender='male')

        response = owner_client.get('/api/v1/children/', {'family_id': str(other_family.id)})

        assert [item['id'] for item in response.data['results']] == [str(other.id)]

    def test_invalid_family_filter(self, owner_client, child):
        response = owner_client.get('/api/v1/children/', {'family_id': 'nope'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unauthenticated(self, api_client):
        response = api_client.get('/api/v1/children/')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestChildDetailPermissions:

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('owner_client', status.HTTP_200_OK),
        ('parent_client', status.HTTP_200_OK),
        ('read_only_client', status.HTTP_200_OK),
        ('outsider_client', status.HTTP_404_NOT_FOUND),
        ('instance_admin_client', status.HTTP_404_NOT_FOUND),
    ])
    def test_retrieve(self, request, child, client_fixture, expected_status):
        client = request.getfixturevalue(client_fixture)
        response = client.get(f'/api/v1/children/{child.id}/')
        assert response.status_code == expected_status

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('owner_client', status.HTTP_200_OK),
        ('parent_client', status.HTTP_200_OK),
        ('read_only_client', status.HTTP_403_FORBIDDEN),
        ('outsider_client', status.HTTP_404_NOT_FOUND),
    ])
    def test_update(self, request, child, client_fixture, expected_status):
        client = request.getfixturevalue(client_fixture)
        response = client.patch(f'/api/v1/children/{child.id}/', {'notes': 'Peanut allergy'}, format='json')
        assert response.status_code == expected_status

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('owner_client', status.HTTP_204_NO_CONTENT),
        ('parent_client', status.HTTP_204_NO_CONTENT),
        ('read_only_client', status.HTTP_403_FORBIDDEN),
        ('outsider_client', status.HTTP_404_NOT_FOUND),
    ])
    def test_delete(self, request, child, client_fixture, expected_status):
        client = request.getfixturevalue(client_fixture)
        response = client.delete(f'/api/v1/children/{child.id}/')
        assert response.status_code == expected_status

    def test_missing_child_is_404(self, owner_client):
        response = owner_client.get(f'/api/v1/children/{uuid.uuid4()}/')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_read_only_response_does_not_leak_role_names(self, read_only_client, child):
        response = read_only_client.patch(f'/api/v1/children/{child.id}/', {'notes': 'x'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert 'read_only' not in str(response.data['detail'])


@pytest.mark.django_db
class TestChildCreate:

    payload = {'name': 'Ava', 'date_of_birth': '2021-06-01', 'gender': 'female'}

    @pytest.mark.parametrize('client_fixture,expected_status', [
        ('owner_client', status.HTTP_201_CREATED),
        ('parent_client', status.HTTP_201_CREATED),
        ('read_only_client', status.HTTP_403_FORBIDDEN),
        ('outsider_client', status.HTTP_404_NOT_FOUND),
    ])
    def test_create_in_explicit_family(self, request, family, client_fixture, expected_status):
        client = request.getfixturevalue(client_fixture)
        response = client.post('/api/v1/children/', {**self.payload, 'family': str(family.id)}, format='json')

        assert response.status_code == expected_status
        if expected_status == status.HTTP_201_CREATED:
            assert response.data['family'] == str(family.id)
            assert Child.objects.get(pk=response.data['id']).family_id == family.id

    def test_create_without_family_uses_owned_family(self, owner_client, family):
        response = owner_client.post('/api/v1/children/', self.payload, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['family'] == str(family.id)

    def test_name_is_required(self, owner_client, family):
        response = owner_client.post('/api/v1/children/', {**self.payload, 'name': '   '}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_family_cannot_be_changed(self, owner_client, owner_user, child, other_family):
        FamilyMember.objects.create(family=other_family, user=owner_user, role=FamilyRoleChoices.OWNER)

        response = owner_client.patch(
            f'/api/v1/children/{child.id}/',
            {'family': str(other_family.id)},
            format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        child.refresh_from_db()
        assert child.family_id != other_family.id


@pytest.mark.django_db
class TestChildDelete:

    def test_delete_audits_cascaded_visits_and_illnesses(self, owner_client, owner_user, child, visit, illness):
        response = owner_client.delete(f'/api/v1/children/{child.id}/')

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Visit.objects.filter(pk=visit.pk).exists()
        assert not Illness.objects.filter(pk=illness.pk).exists()

        deleted = AuditEvent.objects.filter(action='deleted')
        assert set(deleted.values_list('entity_type', 'entity_id')) == {
            ('visit', visit.id),
            ('illness', illness.id),
        }
        assert all(event.user_id == owner_user.pk for event in deleted)
