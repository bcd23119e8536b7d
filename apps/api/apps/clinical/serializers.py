"""
Clinical serializers: children, measurements, visits, illnesses, attachments, history.
"""
import os
import uuid

from rest_framework import serializers

from apps.clinical.models import (
    Attachment,
    Child,
    Illness,
    IllnessTypeChoices,
    Measurement,
    Visit,
)
from apps.clinical.services import replace_illness_types, replace_visit_illnesses
from apps.families.access import require_child_access, require_family_role
from apps.families.models import EDIT_ROLES
from apps.families.services import as_uuid, get_accessible_child_ids, get_or_create_default_family_for_user


class AccessibleChildField(serializers.PrimaryKeyRelatedField):
    """
    Child reference that the caller must be able to edit.

    Missing and foreign children are both reported as 404 so that ids from
    other families cannot be probed; read-only members get 403. The child
    is fixed once the record exists: on update only the current child is
    accepted.
    """

    def get_queryset(self):
        request = self.context.get('request')
        if request is None or not request.user.is_authenticated:
            return Child.objects.none()
        return Child.objects.filter(id__in=get_accessible_child_ids(request.user.pk))

    def to_internal_value(self, data):
        child_id = as_uuid(data)
        if child_id is None:
            self.fail('incorrect_type', data_type=type(data).__name__)
        instance = getattr(self.parent, 'instance', None)
        if instance is not None:
            if child_id != instance.child_id:
                raise serializers.ValidationError('A record cannot be moved to another child.')
            return instance.child
        require_child_access(self.context['request'].user, child_id, edit=True)
        return Child.objects.get(pk=child_id)


def _scope_to_accessible_children(fields, request, **related):
    """Restrict related-record querysets to records of the caller's children."""
    if request is None or not request.user.is_authenticated:
        return
    child_ids = get_accessible_child_ids(request.user.pk)
    for name, model in related.items():
        if name in fields:
            fields[name].queryset = model.objects.filter(child_id__in=child_ids)


def _merged(serializer, attrs, name):
    """Value of `name` after this write: incoming if sent, else current."""
    if name in attrs:
        return attrs[name]
    if serializer.instance is not None:
        return getattr(serializer.instance, name)
    return None


# ============================================================================
# Child
# ============================================================================

class ChildSerializer(serializers.ModelSerializer):
    """
    Child with the caller's capability.

    `family` is optional on create: without it the child goes into the
    caller's default family (created on first use). It cannot be changed
    afterwards. `can_edit` tells the client whether to offer edit
    controls; role names are not exposed here.
    """
    family = serializers.UUIDField(source='family_id', required=False)
    can_edit = serializers.SerializerMethodField()

    class Meta:
        model = Child
        fields = [
            'id',
            'family',
            'name',
            'date_of_birth',
            'gender',
            'due_date',
            'birth_weight',
            'birth_weight_ounces',
            'birth_height',
            'notes',
            'can_edit',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'can_edit', 'created_at', 'updated_at']

    def get_can_edit(self, obj):
        return self.context.get('roles', {}).get(obj.family_id) in EDIT_ROLES

    def validate_family(self, value):
        if self.instance is not None:
            if value != self.instance.family_id:
                raise serializers.ValidationError('A child cannot be moved to another family.')
            return value
        require_family_role(self.context['request'].user, value, edit=True)
        return value

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required.')
        return value

    def create(self, validated_data):
        user = self.context['request'].user
        family_id = validated_data.pop('family_id', None)
        if family_id is None:
            family_id = get_or_create_default_family_for_user(user.pk)
        return Child.objects.create(family_id=family_id, **validated_data)

    def update(self, instance, validated_data):
        validated_data.pop('family_id', None)
        return super().update(instance, validated_data)


# ============================================================================
# Measurement
# ============================================================================

class MeasurementSerializer(serializers.ModelSerializer):
    child = AccessibleChildField()

    class Meta:
        model = Measurement
        fields = [
            'id',
            'child',
            'measurement_date',
            'label',
            'weight_value',
            'weight_ounces',
            'weight_percentile',
            'height_value',
            'height_percentile',
            'head_circumference_value',
            'head_circumference_percentile',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate(self, attrs):
        values = [
            _merged(self, attrs, name)
            for name in ('weight_value', 'height_value', 'head_circumference_value')
        ]
        if all(value is None for value in values):
            raise serializers.ValidationError(
                'At least one of weight_value, height_value or head_circumference_value is required.'
            )
        return attrs


# ============================================================================
# Visit
# ============================================================================

class VisitSerializer(serializers.ModelSerializer):
    """
    Visit serializer.

    Write-only extras on create:
    - create_illness: also create an Illness from a sick visit with illnesses
    - illness_severity: severity (1-10) for that illness
    """
    child = AccessibleChildField()
    illnesses = serializers.ListField(
        child=serializers.ChoiceField(choices=IllnessTypeChoices.choices),
        required=False,
        allow_empty=True,
    )
    create_illness = serializers.BooleanField(write_only=True, required=False, default=False)
    illness_severity = serializers.IntegerField(
        write_only=True,
        required=False,
        allow_null=True,
        min_value=1,
        max_value=10,
    )

    class Meta:
        model = Visit
        fields = [
            'id',
            'child',
            'visit_date',
            'visit_time',
            'visit_type',
            'location',
            'doctor_name',
            'title',
            'weight_value',
            'weight_ounces',
            'weight_percentile',
            'height_value',
            'height_percentile',
            'head_circumference_value',
            'head_circumference_percentile',
            'bmi_value',
            'bmi_percentile',
            'blood_pressure',
            'heart_rate',
            'temperature',
            'symptoms',
            'illness_start_date',
            'end_date',
            'illnesses',
            'injury_type',
            'injury_location',
            'treatment',
            'vision_prescription',
            'vision_refraction',
            'needs_glasses',
            'ordered_glasses',
            'ordered_contacts',
            'dental_procedure_type',
            'dental_notes',
            'cleaning_type',
            'cavities_found',
            'cavities_filled',
            'xrays_taken',
            'fluoride_treatment',
            'sealants_applied',
            'dental_procedures',
            'vaccines_administered',
            'prescriptions',
            'tags',
            'notes',
            'create_illness',
            'illness_severity',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_tags(self, value):
        if value is not None and not isinstance(value, list):
            raise serializers.ValidationError('tags must be a list.')
        return value

    def validate(self, attrs):
        visit_date = _merged(self, attrs, 'visit_date')
        illness_start_date = _merged(self, attrs, 'illness_start_date')
        end_date = _merged(self, attrs, 'end_date')

        if illness_start_date and visit_date and illness_start_date > visit_date:
            raise serializers.ValidationError(
                {'illness_start_date': 'Illness start date cannot be after the visit date.'}
            )
        if end_date and illness_start_date and end_date < illness_start_date:
            raise serializers.ValidationError(
                {'end_date': 'End date must be on or after the illness start date.'}
            )

        found = _merged(self, attrs, 'cavities_found')
        filled = _merged(self, attrs, 'cavities_filled')
        if found is not None and filled is not None and filled > found:
            raise serializers.ValidationError(
                {'cavities_filled': 'Cannot fill more cavities than were found.'}
            )
        return attrs

    def create(self, validated_data):
        validated_data.pop('create_illness', None)
        validated_data.pop('illness_severity', None)
        illnesses = validated_data.pop('illnesses', None)

        visit = Visit.objects.create(**validated_data)
        if illnesses:
            replace_visit_illnesses(visit, illnesses)
        return visit

    def update(self, instance, validated_data):
        validated_data.pop('create_illness', None)
        validated_data.pop('illness_severity', None)
        illnesses = validated_data.pop('illnesses', None)

        visit = super().update(instance, validated_data)
        if illnesses is not None:
            replace_visit_illnesses(visit, illnesses)
        return visit


# ============================================================================
# Illness
# ============================================================================

class IllnessSerializer(serializers.ModelSerializer):
    """Illness; illness_types replaces the whole set whenever it is sent."""
    child = AccessibleChildField()
    illness_types = serializers.ListField(
        child=serializers.ChoiceField(choices=IllnessTypeChoices.choices),
        allow_empty=False,
    )

    class Meta:
        model = Illness
        fields = [
            'id',
            'child',
            'illness_types',
            'start_date',
            'end_date',
            'symptoms',
            'temperature',
            'severity',
            'visit',
            'notes',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_fields(self):
        fields = super().get_fields()
        _scope_to_accessible_children(fields, self.context.get('request'), visit=Visit)
        return fields

    def validate(self, attrs):
        start_date = _merged(self, attrs, 'start_date')
        end_date = _merged(self, attrs, 'end_date')
        if end_date and start_date and end_date < start_date:
            raise serializers.ValidationError(
                {'end_date': 'end_date must be greater than or equal to start_date'}
            )

        visit = _merged(self, attrs, 'visit')
        child = _merged(self, attrs, 'child')
        if visit is not None and child is not None and visit.child_id != child.pk:
            raise serializers.ValidationError({'visit': 'Visit must belong to the same child.'})
        return attrs

    def create(self, validated_data):
        illness_types = validated_data.pop('illness_types')
        illness = Illness.objects.create(**validated_data)
        replace_illness_types(illness, illness_types)
        return illness

    def update(self, instance, validated_data):
        illness_types = validated_data.pop('illness_types', None)
        illness = super().update(instance, validated_data)
        if illness_types is not None:
            replace_illness_types(illness, illness_types)
        return illness


# ============================================================================
# Attachment
# ============================================================================

class AttachmentSerializer(serializers.ModelSerializer):
    """Attachment metadata. stored_filename is assigned by the server."""
    child = AccessibleChildField()
    uploaded_by = serializers.UUIDField(source='uploaded_by_id', read_only=True)

    class Meta:
        model = Attachment
        fields = [
            'id',
            'child',
            'visit',
            'measurement',
            'document_type',
            'original_filename',
            'stored_filename',
            'file_type',
            'file_size',
            'uploaded_by',
            'created_at',
        ]
        read_only_fields = ['id', 'stored_filename', 'uploaded_by', 'created_at']

    def get_fields(self):
        fields = super().get_fields()
        _scope_to_accessible_children(
            fields,
            self.context.get('request'),
            visit=Visit,
            measurement=Measurement,
        )
        return fields

    def validate_file_size(self, value):
        if value <= 0:
            raise serializers.ValidationError('File size must be positive.')
        return value

    def validate(self, attrs):
        child = _merged(self, attrs, 'child')
        for name in ('visit', 'measurement'):
            related = _merged(self, attrs, name)
            if related is not None and child is not None and related.child_id != child.pk:
                raise serializers.ValidationError({name: f'{name.capitalize()} must belong to the same child.'})
        return attrs

    def create(self, validated_data):
        extension = os.path.splitext(validated_data['original_filename'])[1].lower()
        validated_data['stored_filename'] = f'{uuid.uuid4().hex}{extension}'
        validated_data['uploaded_by'] = self.context['request'].user
        return super().create(validated_data)


# ============================================================================
# History
# ============================================================================

class AuditHistoryEventSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    entity_type = serializers.CharField()
    entity_id = serializers.UUIDField()
    user_id = serializers.UUIDField(allow_null=True)
    user_name = serializers.CharField(allow_null=True)
    user_email = serializers.EmailField(allow_null=True)
    action = serializers.CharField()
    changed_at = serializers.DateTimeField()
    request_id = serializers.UUIDField(allow_null=True)
    changes = serializers.JSONField()
    summary = serializers.CharField()
