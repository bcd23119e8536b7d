"""
Clinical viewsets: children, measurements, visits, illnesses, attachments.

Every queryset is restricted to children in the caller's families, so
records of other families are 404. Unsafe methods on a visible record
additionally require an owner or parent role (403 for read_only).
"""
import logging

from django.db import transaction
from django.utils.dateparse import parse_date
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from apps.clinical.audit import (
    capture_created,
    capture_updated,
    clamp_page,
    entity_type_of,
    history_count,
    history_of,
    snapshot_of,
)
from apps.clinical.models import Attachment, Child, Illness, Measurement, Visit
from apps.clinical.serializers import (
    AttachmentSerializer,
    AuditHistoryEventSerializer,
    ChildSerializer,
    IllnessSerializer,
    MeasurementSerializer,
    VisitSerializer,
)
from apps.clinical.services import (
    check_updated_at,
    create_illness_from_visit,
    delete_child,
    delete_illness,
    delete_visit,
)
from apps.families.permissions import ChildRecordPermission
from apps.families.services import as_uuid, get_accessible_child_ids, memberships_of

logger = logging.getLogger(__name__)


def _uuid_param(request, name):
    value = request.query_params.get(name)
    if not value:
        return None
    parsed = as_uuid(value)
    if parsed is None:
        raise ValidationError({name: 'Must be a valid UUID.'})
    return parsed


def _date_param(request, name):
    value = request.query_params.get(name)
    if not value:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError({name: 'Must be a date in YYYY-MM-DD format.'})
    return parsed


def _int_param(request, *names):
    for name in names:
        value = request.query_params.get(name)
        if value:
            try:
                return int(value)
            except ValueError:
                raise ValidationError({name: 'Must be an integer.'})
    return None


class ChildScopedViewSet(viewsets.ModelViewSet):
    """
    Base for records owned through a child.

    Subclasses set `model` and may extend `filter_records`.
    """
    model = None
    permission_classes = [ChildRecordPermission]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return self.model.objects.none()
        queryset = self.model.objects.filter(child_id__in=get_accessible_child_ids(self.request.user.pk))

        child_id = _uuid_param(self.request, 'child_id')
        if child_id is not None:
            queryset = queryset.filter(child_id=child_id)

        return self.filter_records(queryset)

    def filter_records(self, queryset):
        return queryset

    def update(self, request, *args, **kwargs):
        """PATCH only; every update is partial."""
        kwargs.pop('partial', None)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        self.perform_update(serializer)
        return Response(serializer.data)


class AuditedRecordViewSet(ChildScopedViewSet):
    """
    Child-scoped records whose every mutation writes an audit event in the
    same transaction. Updates honour optimistic locking on `updated_at`.
    """

    def perform_create(self, serializer):
        with transaction.atomic():
            instance = serializer.save()
            capture_created(instance, user=self.request.user)

    def perform_update(self, serializer):
        with transaction.atomic():
            instance = self.model.objects.select_for_update().get(pk=serializer.instance.pk)
            check_updated_at(instance, self.request.data.get('updated_at'))

            before = snapshot_of(instance)
            serializer.instance = instance
            instance = serializer.save()
            capture_updated(instance, before, user=self.request.user)

    @action(detail=True, methods=['get'], url_path='history')
    def history(self, request, pk=None):
        """
        GET /api/v1/{visits|illnesses}/{id}/history/?page=1&page_size=50

        page_size (alias: limit) is capped at HISTORY_MAX_PAGE_SIZE.
        """
        instance = self.get_object()
        page, page_size = clamp_page(
            _int_param(request, 'page'),
            _int_param(request, 'page_size', 'limit'),
        )
        entity_type = entity_type_of(instance)

        events = history_of(entity_type, instance.pk, page=page, page_size=page_size)
        return Response({
            'count': history_count(entity_type, instance.pk),
            'page': page,
            'page_size': page_size,
            'results': AuditHistoryEventSerializer(events, many=True).data,
        })


# ============================================================================
# Children
# ============================================================================

class ChildViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Child endpoints.

    Endpoints:
    - GET /api/v1/children/
    - POST /api/v1/children/ - into `family`, or the caller's default family
    - GET /api/v1/children/{id}/
    - PATCH /api/v1/children/{id}/
    - DELETE /api/v1/children/{id}/ - cascades to all records of the child

    Query parameters for list:
    - ?family_id=<uuid>
    """
    serializer_class = ChildSerializer
    permission_classes = [ChildRecordPermission]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']
    ordering_fields = ['name', 'date_of_birth', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Child.objects.none()
        queryset = Child.objects.filter(id__in=get_accessible_child_ids(self.request.user.pk))

        family_id = _uuid_param(self.request, 'family_id')
        if family_id is not None:
            queryset = queryset.filter(family_id=family_id)
        return queryset

    def get_serializer_context(self):
        context = super().get_serializer_context()
        user = getattr(self.request, 'user', None)
        if user is not None and user.is_authenticated:
            context['roles'] = dict(memberships_of(user.pk))
        return context

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        child = serializer.save()

        # Roles may have changed if the default family was just created
        output = ChildSerializer(child, context=self.get_serializer_context())
        return Response(output.data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        kwargs.pop('partial', None)
        child = self.get_object()
        serializer = self.get_serializer(child, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    def perform_destroy(self, instance):
        delete_child(instance, user=self.request.user)


# ============================================================================
# Measurements
# ============================================================================

class MeasurementViewSet(ChildScopedViewSet):
    """
    Endpoints:
    - GET|POST /api/v1/measurements/?child_id=<uuid>
    - GET|PATCH|DELETE /api/v1/measurements/{id}/
    """
    model = Measurement
    serializer_class = MeasurementSerializer
    ordering_fields = ['measurement_date', 'created_at']
    ordering = ['-measurement_date', '-created_at']


# ============================================================================
# Visits
# ============================================================================

class VisitViewSet(AuditedRecordViewSet):
    """
    ViewSet for Visit endpoints.

    Endpoints:
    - GET /api/v1/visits/?child_id=&visit_type=&start_date=&end_date=
    - POST /api/v1/visits/ - optional create_illness + illness_severity
    - GET /api/v1/visits/{id}/
    - PATCH /api/v1/visits/{id}/ - optional updated_at for optimistic locking
    - DELETE /api/v1/visits/{id}/
    - GET /api/v1/visits/{id}/history/
    """
    model = Visit
    serializer_class = VisitSerializer
    ordering_fields = ['visit_date', 'created_at']
    ordering = ['-visit_date', '-created_at']

    def filter_records(self, queryset):
        visit_type = self.request.query_params.get('visit_type')
        if visit_type:
            queryset = queryset.filter(visit_type=visit_type)

        start_date = _date_param(self.request, 'start_date')
        if start_date:
            queryset = queryset.filter(visit_date__gte=start_date)

        end_date = _date_param(self.request, 'end_date')
        if end_date:
            queryset = queryset.filter(visit_date__lte=end_date)
        return queryset

    def perform_create(self, serializer):
        create_illness = serializer.validated_data.get('create_illness', False)
        severity = serializer.validated_data.get('illness_severity')

        with transaction.atomic():
            visit = serializer.save()
            capture_created(visit, user=self.request.user)
            if create_illness:
                create_illness_from_visit(visit, severity, user=self.request.user)

    def perform_destroy(self, instance):
        delete_visit(instance, user=self.request.user)


# ============================================================================
# Illnesses
# ============================================================================

class IllnessViewSet(AuditedRecordViewSet):
    """
    ViewSet for Illness endpoints.

    Endpoints:
    - GET /api/v1/illnesses/?child_id=&illness_type=&start_date=&end_date=
    - POST /api/v1/illnesses/
    - GET /api/v1/illnesses/{id}/
    - PATCH /api/v1/illnesses/{id}/ - illness_types replaces the whole set
    - DELETE /api/v1/illnesses/{id}/
    - GET /api/v1/illnesses/{id}/history/
    """
    model = Illness
    serializer_class = IllnessSerializer
    ordering_fields = ['start_date', 'created_at', 'severity']
    ordering = ['-start_date', '-created_at']

    def filter_records(self, queryset):
        illness_type = self.request.query_params.get('illness_type')
        if illness_type:
            queryset = queryset.filter(type_entries__illness_type=illness_type).distinct()

        start_date = _date_param(self.request, 'start_date')
        if start_date:
            queryset = queryset.filter(start_date__gte=start_date)

        end_date = _date_param(self.request, 'end_date')
        if end_date:
            queryset = queryset.filter(start_date__lte=end_date)
        return queryset

    def perform_destroy(self, instance):
        delete_illness(instance, user=self.request.user)


# ============================================================================
# Attachments
# ============================================================================

class AttachmentViewSet(ChildScopedViewSet):
    """
    Attachment metadata. File bytes are stored outside this service.

    Endpoints:
    - GET|POST /api/v1/attachments/?child_id=&visit_id=&measurement_id=
    - GET|PATCH|DELETE /api/v1/attachments/{id}/
    """
    model = Attachment
    serializer_class = AttachmentSerializer
    ordering_fields = ['created_at', 'original_filename']
    ordering = ['-created_at']

    def filter_records(self, queryset):
        visit_id = _uuid_param(self.request, 'visit_id')
        if visit_id is not None:
            queryset = queryset.filter(visit_id=visit_id)

        measurement_id = _uuid_param(self.request, 'measurement_id')
        if measurement_id is not None:
            queryset = queryset.filter(measurement_id=measurement_id)
        return queryset
