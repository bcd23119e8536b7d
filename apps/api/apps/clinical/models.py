"""
Clinical models: child, measurement, visit, illness, attachment, audit_event.

Descendant records key off child only; the owning family is always
resolved through Child.family.
"""
import uuid
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


# ============================================================================
# Enums
# ============================================================================

class GenderChoices(models.TextChoices):
    MALE = 'male', 'Male'
    FEMALE = 'female', 'Female'


class VisitTypeChoices(models.TextChoices):
    WELLNESS = 'wellness', 'Wellness'
    SICK = 'sick', 'Sick'
    INJURY = 'injury', 'Injury'
    VISION = 'vision', 'Vision'
    DENTAL = 'dental', 'Dental'


class IllnessTypeChoices(models.TextChoices):
    FLU = 'flu', 'Flu'
    STREP = 'strep', 'Strep'
    RSV = 'rsv', 'RSV'
    COVID = 'covid', 'COVID'
    COLD = 'cold', 'Cold'
    STOMACH_BUG = 'stomach_bug', 'Stomach bug'
    EAR_INFECTION = 'ear_infection', 'Ear infection'
    HAND_FOOT_MOUTH = 'hand_foot_mouth', 'Hand, foot and mouth'
    CROUP = 'croup', 'Croup'
    PINK_EYE = 'pink_eye', 'Pink eye'
    OTHER = 'other', 'Other'


class AuditEntityTypeChoices(models.TextChoices):
    VISIT = 'visit', 'Visit'
    ILLNESS = 'illness', 'Illness'


class AuditActionChoices(models.TextChoices):
    CREATED = 'created', 'Created'
    UPDATED = 'updated', 'Updated'
    DELETED = 'deleted', 'Deleted'


PERCENTILE_VALIDATORS = [MinValueValidator(0), MaxValueValidator(100)]
OUNCES_VALIDATORS = [MinValueValidator(0), MaxValueValidator(15)]
TEMPERATURE_VALIDATORS = [MinValueValidator(95), MaxValueValidator(110)]


# ============================================================================
# Child
# ============================================================================

class Child(models.Model):
    """
    A child whose medical history is tracked.

    Fields:
    - id: UUID PK
    - family: owning family (required, fixed at creation)
    - name, date_of_birth, gender
    - due_date, birth_weight, birth_weight_ounces, birth_height: optional birth data
    - notes
    - created_at, updated_at
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    family = models.ForeignKey(
        'families.Family',
        on_delete=models.PROTECT,
        related_name='children'
    )
    name = models.CharField(max_length=255)
    date_of_birth = models.DateField()
    gender = models.CharField(max_length=20, choices=GenderChoices.choices)
    due_date = models.DateField(blank=True, null=True)
    birth_weight = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True)
    birth_weight_ounces = models.PositiveSmallIntegerField(
        blank=True,
        null=True,
        validators=OUNCES_VALIDATORS
    )
    birth_height = models.DecimalField(max_digits=6, decimal_places=2, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'child'
        verbose_name = 'Child'
        verbose_name_plural = 'Children'
        ordering = ['name']
        indexes = [
            models.Index(fields=['family'], name='idx_child_family'),
        ]

    def __str__(self):
        return self.name


# ============================================================================
# Measurement
# ============================================================================

class Measurement(models.Model):
    """Standalone growth measurement. At least one value is required."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    child = models.ForeignKey(Child, on_delete=models.CASCADE, related_name='measurements')
    measurement_date = models.DateField()
    label = models.CharField(max_length=255, blank=True, null=True)
    weight_value = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True)
    weight_ounces = models.PositiveSmallIntegerField(blank=True, null=True, validators=OUNCES_VALIDATORS)
    weight_percentile = models.DecimalField(
        max_digits=5, decimal_places=2, blank=True, null=True, validators=PERCENTILE_VALIDATORS
    )
    height_value = models.DecimalField(max_digits=6, decimal_places=2, blank=True, null=True)
    height_percentile = models.DecimalField(
        max_digits=5, decimal_places=2, blank=True, null=True, validators=PERCENTILE_VALIDATORS
    )
    head_circumference_value = models.DecimalField(max_digits=6, decimal_places=2, blank=True, null=True)
    head_circumference_percentile = models.DecimalField(
        max_digits=5, decimal_places=2, blank=True, null=True, validators=PERCENTILE_VALIDATORS
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'measurement'
        verbose_name = 'Measurement'
        verbose_name_plural = 'Measurements'
        ordering = ['-measurement_date', '-created_at']
        indexes = [
            models.Index(fields=['child', '-measurement_date'], name='idx_measurement_child_date'),
        ]

    def __str__(self):
        return f"Measurement {self.measurement_date} - {self.child_id}"


# ============================================================================
# Visit
# ============================================================================

class Visit(models.Model):
    """
    Doctor visit. Audited (see apps.clinical.audit).

    Type-specific groups of fields:
    - growth: weight/height/head circumference/BMI values and percentiles
    - sick: symptoms, temperature, illness_start_date, end_date, illnesses (VisitIllness)
    - injury: injury_type, injury_location, treatment
    - vision: vision_prescription, vision_refraction, needs/ordered glasses, ordered_contacts
    - dental: procedure type, cleaning, cavities, x-rays, fluoride, sealants
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    child = models.ForeignKey(Child, on_delete=models.CASCADE, related_name='visits')
    visit_date = models.DateField()
    visit_time = models.TimeField(blank=True, null=True)
    visit_type = models.CharField(max_length=20, choices=VisitTypeChoices.choices)
    location = models.CharField(max_length=255, blank=True, null=True)
    doctor_name = models.CharField(max_length=255, blank=True, null=True)
    title = models.CharField(max_length=255, blank=True, null=True)

    # Growth
    weight_value = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True)
    weight_ounces = models.PositiveSmallIntegerField(blank=True, null=True, validators=OUNCES_VALIDATORS)
    weight_percentile = models.DecimalField(
        max_digits=5, decimal_places=2, blank=True, null=True, validators=PERCENTILE_VALIDATORS
    )
    height_value = models.DecimalField(max_digits=6, decimal_places=2, blank=True, null=True)
    height_percentile = models.DecimalField(
        max_digits=5, decimal_places=2, blank=True, null=True, validators=PERCENTILE_VALIDATORS
    )
    head_circumference_value = models.DecimalField(max_digits=6, decimal_places=2, blank=True, null=True)
    head_circumference_percentile = models.DecimalField(
        max_digits=5, decimal_places=2, blank=True, null=True, validators=PERCENTILE_VALIDATORS
    )
    bmi_value = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True)
    bmi_percentile = models.DecimalField(
        max_digits=5, decimal_places=2, blank=True, null=True, validators=PERCENTILE_VALIDATORS
    )

    # Vitals
    blood_pressure = models.CharField(max_length=20, blank=True, null=True)
    heart_rate = models.PositiveSmallIntegerField(
        blank=True,
        null=True,
        validators=[MinValueValidator(40), MaxValueValidator(250)]
    )
    temperature = models.DecimalField(
        max_digits=4, decimal_places=1, blank=True, null=True, validators=TEMPERATURE_VALIDATORS
    )

    # Sick
    symptoms = models.TextField(blank=True, null=True)
    illness_start_date = models.DateField(blank=True, null=True)
    end_date = models.DateField(blank=True, null=True)

    # Injury
    injury_type = models.CharField(max_length=100, blank=True, null=True)
    injury_location = models.CharField(max_length=255, blank=True, null=True)
    treatment = models.TextField(blank=True, null=True)

    # Vision
    vision_prescription = models.TextField(blank=True, null=True)
    vision_refraction = models.JSONField(blank=True, null=True)
    needs_glasses = models.BooleanField(blank=True, null=True)
    ordered_glasses = models.BooleanField(blank=True, null=True)
    ordered_contacts = models.BooleanField(blank=True, null=True)

    # Dental
    dental_procedure_type = models.CharField(max_length=100, blank=True, null=True)
    dental_notes = models.TextField(blank=True, null=True)
    cleaning_type = models.CharField(max_length=50, blank=True, null=True)
    cavities_found = models.PositiveSmallIntegerField(blank=True, null=True)
    cavities_filled = models.PositiveSmallIntegerField(blank=True, null=True)
    xrays_taken = models.BooleanField(blank=True, null=True)
    fluoride_treatment = models.BooleanField(blank=True, null=True)
    sealants_applied = models.BooleanField(blank=True, null=True)
    dental_procedures = models.JSONField(blank=True, null=True)

    vaccines_administered = models.TextField(blank=True, null=True)
    prescriptions = models.JSONField(blank=True, null=True)
    tags = models.JSONField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'visit'
        verbose_name = 'Visit'
        verbose_name_plural = 'Visits'
        ordering = ['-visit_date', '-created_at']
        indexes = [
            models.Index(fields=['child', '-visit_date'], name='idx_visit_child_date'),
            models.Index(fields=['visit_type'], name='idx_visit_type'),
        ]

    def __str__(self):
        return f"Visit {self.visit_type} - {self.visit_date}"

    @property
    def illnesses(self):
        """Illness types recorded at this visit, in insertion order."""
        return list(self.illness_entries.order_by('id').values_list('illness_type', flat=True))


class VisitIllness(models.Model):
    """Illness type recorded at a visit."""
    visit = models.ForeignKey(Visit, on_delete=models.CASCADE, related_name='illness_entries')
    illness_type = models.CharField(max_length=50, choices=IllnessTypeChoices.choices)

    class Meta:
        db_table = 'visit_illness'
        unique_together = [('visit', 'illness_type')]
        ordering = ['id']
        indexes = [
            models.Index(fields=['illness_type'], name='idx_visit_illness_type'),
        ]

    def __str__(self):
        return f"{self.visit_id}: {self.illness_type}"


# ============================================================================
# Illness
# ============================================================================

class Illness(models.Model):
    """
    Illness episode. Audited (see apps.clinical.audit).

    illness_types is many-valued through IllnessTypeEntry; writes replace
    the full set.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    child = models.ForeignKey(Child, on_delete=models.CASCADE, related_name='illnesses')
    start_date = models.DateField()
    end_date = models.DateField(blank=True, null=True)
    symptoms = models.TextField(blank=True, null=True)
    temperature = models.DecimalField(
        max_digits=4, decimal_places=1, blank=True, null=True, validators=TEMPERATURE_VALIDATORS
    )
    severity = models.PositiveSmallIntegerField(
        blank=True,
        null=True,
        validators=[MinValueValidator(1), MaxValueValidator(10)]
    )
    visit = models.ForeignKey(
        Visit,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='originated_illnesses',
        help_text='Visit this illness was recorded from, if any'
    )
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'illness'
        verbose_name = 'Illness'
        verbose_name_plural = 'Illnesses'
        ordering = ['-start_date', '-created_at']
        indexes = [
            models.Index(fields=['child', '-start_date'], name='idx_illness_child_date'),
        ]

    def __str__(self):
        return f"Illness {self.start_date} - {self.child_id}"

    @property
    def illness_types(self):
        """Illness types in insertion order."""
        return list(self.type_entries.order_by('id').values_list('illness_type', flat=True))


class IllnessTypeEntry(models.Model):
    illness = models.ForeignKey(Illness, on_delete=models.CASCADE, related_name='type_entries')
    illness_type = models.CharField(max_length=50, choices=IllnessTypeChoices.choices)

    class Meta:
        db_table = 'illness_illness_type'
        unique_together = [('illness', 'illness_type')]
        ordering = ['id']
        indexes = [
            models.Index(fields=['illness_type'], name='idx_illness_type_entry_type'),
        ]

    def __str__(self):
        return f"{self.illness_id}: {self.illness_type}"


# ============================================================================
# Attachment
# ============================================================================

class Attachment(models.Model):
    """
    Metadata for an uploaded document. Byte storage lives outside the database.

    A child attachment may additionally point at one of the child's visits
    or measurements.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    child = models.ForeignKey(Child, on_delete=models.CASCADE, related_name='attachments')
    visit = models.ForeignKey(
        Visit,
        on_delete=models.CASCADE,
        blank=True,
        null=True,
        related_name='attachments'
    )
    measurement = models.ForeignKey(
        Measurement,
        on_delete=models.CASCADE,
        blank=True,
        null=True,
        related_name='attachments'
    )
    document_type = models.CharField(max_length=50, default='vaccine_report')
    original_filename = models.CharField(max_length=255)
    stored_filename = models.CharField(max_length=255, unique=True)
    file_type = models.CharField(max_length=100)
    file_size = models.PositiveIntegerField()
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='uploaded_attachments'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'attachment'
        verbose_name = 'Attachment'
        verbose_name_plural = 'Attachments'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['child'], name='idx_attachment_child'),
            models.Index(fields=['visit'], name='idx_attachment_visit'),
            models.Index(fields=['measurement'], name='idx_attachment_measurement'),
        ]

    def __str__(self):
        return self.stored_filename


# ============================================================================
# Audit
# ============================================================================

class AuditEventImmutableError(Exception):
    """Audit events are append-only."""
    pass


class AuditEventQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise AuditEventImmutableError('Audit events cannot be modified')

    def delete(self):
        raise AuditEventImmutableError('Audit events cannot be deleted')


class AuditEvent(models.Model):
    """
    One committed mutation of a visit or illness.

    Fields:
    - id: monotonic, tie-breaker for events sharing changed_at
    - entity_type: visit|illness
    - entity_id: id of the visit/illness (kept after the entity is deleted)
    - user: acting user (null for system actions or if the user is gone)
    - action: created|updated|deleted
    - changed_at
    - request_id: correlation id of the request that made the change
    - changes: {field: {"before": ..., "after": ...}}

    Summaries are derived at read time and never stored.
    """
    id = models.BigAutoField(primary_key=True)
    entity_type = models.CharField(max_length=20, choices=AuditEntityTypeChoices.choices)
    entity_id = models.UUIDField()
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='audit_events'
    )
    action = models.CharField(max_length=20, choices=AuditActionChoices.choices)
    changed_at = models.DateTimeField()
    request_id = models.UUIDField(blank=True, null=True)
    changes = models.JSONField(default=dict)

    objects = AuditEventQuerySet.as_manager()

    class Meta:
        db_table = 'audit_event'
        verbose_name = 'Audit Event'
        verbose_name_plural = 'Audit Events'
        ordering = ['-changed_at', '-id']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id', '-changed_at'], name='idx_audit_event_entity'),
            models.Index(fields=['user', '-changed_at'], name='idx_audit_event_user'),
            models.Index(fields=['-changed_at'], name='idx_audit_event_changed_at'),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type} {self.entity_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AuditEventImmutableError('Audit events cannot be modified')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditEventImmutableError('Audit events cannot be deleted')
