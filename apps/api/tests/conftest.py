"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- Users and authenticated API clients by family role
- A family with one member per role, plus an unrelated outsider family
- Child, visit and illness instances
"""
import datetime

import pytest
from rest_framework.test import APIClient

from apps.authz.models import User
from apps.clinical.models import Child, Illness, IllnessTypeEntry, Visit
from apps.core.observability.correlation import clear_request_context
from apps.families.models import Family, FamilyMember, FamilyRoleChoices


@pytest.fixture(autouse=True)
def _reset_request_context():
    """Request ids bound by one test's requests must not leak into the next."""
    clear_request_context()
    yield
    clear_request_context()


def make_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# ============================================================================
# Users
# ============================================================================

@pytest.fixture
def user_factory(db):
    """
    Factory fixture for creating users.

    Usage:
        user = user_factory(email='sam@test.com', username='Sam')
    """
    created = []

    def _create_user(**kwargs):
        defaults = {
            'email': f'user{len(created)}@test.com',
            'password': 'testpass123',
            'username': f'user{len(created)}',
        }
        defaults.update(kwargs)
        user = User.objects.create_user(**defaults)
        created.append(user)
        return user

    return _create_user


@pytest.fixture
def owner_user(db):
    return User.objects.create_user(email='owner@test.com', password='testpass123', username='Olivia')


@pytest.fixture
def parent_user(db):
    return User.objects.create_user(email='parent@test.com', password='testpass123', username='Pat')


@pytest.fixture
def read_only_user(db):
    return User.objects.create_user(email='grandma@test.com', password='testpass123', username='Gran')


@pytest.fixture
def outsider_user(db):
    """Member of a different family only."""
    return User.objects.create_user(email='outsider@test.com', password='testpass123', username='Otto')


@pytest.fixture
def instance_admin_user(db):
    """Instance admin with no family membership."""
    return User.objects.create_user(
        email='admin@test.com',
        password='testpass123',
        username='Admin',
        is_instance_admin=True,
    )


# ============================================================================
# Families
# ============================================================================

@pytest.fixture
def family(db, owner_user, parent_user, read_only_user):
    """Family with one owner, one parent and one read_only member."""
    family = Family.objects.create(name='Smith Family')
    FamilyMember.objects.create(family=family, user=owner_user, role=FamilyRoleChoices.OWNER)
    FamilyMember.objects.create(family=family, user=parent_user, role=FamilyRoleChoices.PARENT)
    FamilyMember.objects.create(family=family, user=read_only_user, role=FamilyRoleChoices.READ_ONLY)
    return family


@pytest.fixture
def other_family(db, outsider_user):
    family = Family.objects.create(name='Jones Family')
    FamilyMember.objects.create(family=family, user=outsider_user, role=FamilyRoleChoices.OWNER)
    return family


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def owner_client(family, owner_user):
    return make_client(owner_user)


@pytest.fixture
def parent_client(family, parent_user):
    return make_client(parent_user)


@pytest.fixture
def read_only_client(family, read_only_user):
    return make_client(read_only_user)


@pytest.fixture
def outsider_client(other_family, outsider_user):
    return make_client(outsider_user)


@pytest.fixture
def instance_admin_client(instance_admin_user):
    return make_client(instance_admin_user)


# ============================================================================
# Clinical data
# ============================================================================

@pytest.fixture
def child(db, family):
    return Child.objects.create(
        family=family,
        name='Emma',
        date_of_birth=datetime.date(2020, 3, 14),
        gender='female',
    )


@pytest.fixture
def other_child(db, other_family):
    return Child.objects.create(
        family=other_family,
        name='Liam',
        date_of_birth=datetime.date(2019, 7, 1),
        gender='male',
    )


@pytest.fixture
def visit(db, child):
    """Sick visit created directly (no audit event)."""
    return Visit.objects.create(
        child=child,
        visit_date=datetime.date(2024, 1, 10),
        visit_type='sick',
        doctor_name='Dr. Smith',
        symptoms='Fever',
        notes='Initial notes',
    )


@pytest.fixture
def illness(db, child):
    """Illness created directly (no audit event)."""
    illness = Illness.objects.create(
        child=child,
        start_date=datetime.date(2024, 1, 8),
        symptoms='Cough',
        severity=4,
    )
    IllnessTypeEntry.objects.create(illness=illness, illness_type='cold')
    return illness
