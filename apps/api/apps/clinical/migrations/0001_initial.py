# Initial migration for clinical app: child, measurement, visit, illness, attachment, audit_event

import uuid
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


PERCENTILE = [django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)]
OUNCES = [django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(15)]
TEMPERATURE = [django.core.validators.MinValueValidator(95), django.core.validators.MaxValueValidator(110)]

ILLNESS_TYPES = [
    ('flu', 'Flu'),
    ('strep', 'Strep'),
    ('rsv', 'RSV'),
    ('covid', 'COVID'),
    ('cold', 'Cold'),
    ('stomach_bug', 'Stomach bug'),
    ('ear_infection', 'Ear infection'),
    ('hand_foot_mouth', 'Hand, foot and mouth'),
    ('croup', 'Croup'),
    ('pink_eye', 'Pink eye'),
    ('other', 'Other'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('families', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Child',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('date_of_birth', models.DateField()),
                ('gender', models.CharField(choices=[('male', 'Male'), ('female', 'Female')], max_length=20)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('birth_weight', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('birth_weight_ounces', models.PositiveSmallIntegerField(blank=True, null=True, validators=OUNCES)),
                ('birth_height', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('family', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='children', to='families.family')),
            ],
            options={
                'verbose_name': 'Child',
                'verbose_name_plural': 'Children',
                'db_table': 'child',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Measurement',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('measurement_date', models.DateField()),
                ('label', models.CharField(blank=True, max_length=255, null=True)),
                ('weight_value', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('weight_ounces', models.PositiveSmallIntegerField(blank=True, null=True, validators=OUNCES)),
                ('weight_percentile', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=PERCENTILE)),
                ('height_value', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('height_percentile', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=PERCENTILE)),
                ('head_circumference_value', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('head_circumference_percentile', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=PERCENTILE)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('child', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='measurements', to='clinical.child')),
            ],
            options={
                'verbose_name': 'Measurement',
                'verbose_name_plural': 'Measurements',
                'db_table': 'measurement',
                'ordering': ['-measurement_date', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Visit',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('visit_date', models.DateField()),
                ('visit_time', models.TimeField(blank=True, null=True)),
                ('visit_type', models.CharField(
                    choices=[('wellness', 'Wellness'), ('sick', 'Sick'), ('injury', 'Injury'), ('vision', 'Vision'), ('dental', 'Dental')],
                    max_length=20
                )),
                ('location', models.CharField(blank=True, max_length=255, null=True)),
                ('doctor_name', models.CharField(blank=True, max_length=255, null=True)),
                ('title', models.CharField(blank=True, max_length=255, null=True)),
                ('weight_value', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('weight_ounces', models.PositiveSmallIntegerField(blank=True, null=True, validators=OUNCES)),
                ('weight_percentile', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=PERCENTILE)),
                ('height_value', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('height_percentile', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=PERCENTILE)),
                ('head_circumference_value', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('head_circumference_percentile', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=PERCENTILE)),
                ('bmi_value', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('bmi_percentile', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=PERCENTILE)),
                ('blood_pressure', models.CharField(blank=True, max_length=20, null=True)),
                ('heart_rate', models.PositiveSmallIntegerField(
                    blank=True,
                    null=True,
                    validators=[django.core.validators.MinValueValidator(40), django.core.validators.MaxValueValidator(250)]
                )),
                ('temperature', models.DecimalField(blank=True, decimal_places=1, max_digits=4, null=True, validators=TEMPERATURE)),
                ('symptoms', models.TextField(blank=True, null=True)),
                ('illness_start_date', models.DateField(blank=True, null=True)),
                ('end_date', models.DateField(blank=True, null=True)),
                ('injury_type', models.CharField(blank=True, max_length=100, null=True)),
                ('injury_location', models.CharField(blank=True, max_length=255, null=True)),
                ('treatment', models.TextField(blank=True, null=True)),
                ('vision_prescription', models.TextField(blank=True, null=True)),
                ('vision_refraction', models.JSONField(blank=True, null=True)),
                ('needs_glasses', models.BooleanField(blank=True, null=True)),
                ('ordered_glasses', models.BooleanField(blank=True, null=True)),
                ('ordered_contacts', models.BooleanField(blank=True, null=True)),
                ('dental_procedure_type', models.CharField(blank=True, max_length=100, null=True)),
                ('dental_notes', models.TextField(blank=True, null=True)),
                ('cleaning_type', models.CharField(blank=True, max_length=50, null=True)),
                ('cavities_found', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('cavities_filled', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('xrays_taken', models.BooleanField(blank=True, null=True)),
                ('fluoride_treatment', models.BooleanField(blank=True, null=True)),
                ('sealants_applied', models.BooleanField(blank=True, null=True)),
                ('dental_procedures', models.JSONField(blank=True, null=True)),
                ('vaccines_administered', models.TextField(blank=True, null=True)),
                ('prescriptions', models.JSONField(blank=True, null=True)),
                ('tags', models.JSONField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('child', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='visits', to='clinical.child')),
            ],
            options={
                'verbose_name': 'Visit',
                'verbose_name_plural': 'Visits',
                'db_table': 'visit',
                'ordering': ['-visit_date', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='VisitIllness',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('illness_type', models.CharField(choices=ILLNESS_TYPES, max_length=50)),
                ('visit', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='illness_entries', to='clinical.visit')),
            ],
            options={
                'db_table': 'visit_illness',
                'ordering': ['id'],
                'unique_together': {('visit', 'illness_type')},
            },
        ),
        migrations.CreateModel(
            name='Illness',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField(blank=True, null=True)),
                ('symptoms', models.TextField(blank=True, null=True)),
                ('temperature', models.DecimalField(blank=True, decimal_places=1, max_digits=4, null=True, validators=TEMPERATURE)),
                ('severity', models.PositiveSmallIntegerField(
                    blank=True,
                    null=True,
                    validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)]
                )),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('child', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='illnesses', to='clinical.child')),
                ('visit', models.ForeignKey(
                    blank=True,
                    help_text='Visit this illness was recorded from, if any',
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='originated_illnesses',
                    to='clinical.visit'
                )),
            ],
            options={
                'verbose_name': 'Illness',
                'verbose_name_plural': 'Illnesses',
                'db_table': 'illness',
                'ordering': ['-start_date', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='IllnessTypeEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('illness_type', models.CharField(choices=ILLNESS_TYPES, max_length=50)),
                ('illness', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='type_entries', to='clinical.illness')),
            ],
            options={
                'db_table': 'illness_illness_type',
                'ordering': ['id'],
                'unique_together': {('illness', 'illness_type')},
            },
        ),
        migrations.CreateModel(
            name='Attachment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('document_type', models.CharField(default='vaccine_report', max_length=50)),
                ('original_filename', models.CharField(max_length=255)),
                ('stored_filename', models.CharField(max_length=255, unique=True)),
                ('file_type', models.CharField(max_length=100)),
                ('file_size', models.PositiveIntegerField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('child', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attachments', to='clinical.child')),
                ('measurement', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='attachments', to='clinical.measurement')),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='uploaded_attachments', to=settings.AUTH_USER_MODEL)),
                ('visit', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='attachments', to='clinical.visit')),
            ],
            options={
                'verbose_name': 'Attachment',
                'verbose_name_plural': 'Attachments',
                'db_table': 'attachment',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('entity_type', models.CharField(choices=[('visit', 'Visit'), ('illness', 'Illness')], max_length=20)),
                ('entity_id', models.UUIDField()),
                ('action', models.CharField(
                    choices=[('created', 'Created'), ('updated', 'Updated'), ('deleted', 'Deleted')],
                    max_length=20
                )),
                ('changed_at', models.DateTimeField()),
                ('request_id', models.UUIDField(blank=True, null=True)),
                ('changes', models.JSONField(default=dict)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_events', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Audit Event',
                'verbose_name_plural': 'Audit Events',
                'db_table': 'audit_event',
                'ordering': ['-changed_at', '-id'],
            },
        ),
        migrations.AddIndex(
            model_name='child',
            index=models.Index(fields=['family'], name='idx_child_family'),
        ),
        migrations.AddIndex(
            model_name='measurement',
            index=models.Index(fields=['child', '-measurement_date'], name='idx_measurement_child_date'),
        ),
        migrations.AddIndex(
            model_name='visit',
            index=models.Index(fields=['child', '-visit_date'], name='idx_visit_child_date'),
        ),
        migrations.AddIndex(
            model_name='visit',
            index=models.Index(fields=['visit_type'], name='idx_visit_type'),
        ),
        migrations.AddIndex(
            model_name='visitillness',
            index=models.Index(fields=['illness_type'], name='idx_visit_illness_type'),
        ),
        migrations.AddIndex(
            model_name='illness',
            index=models.Index(fields=['child', '-start_date'], name='idx_illness_child_date'),
        ),
        migrations.AddIndex(
            model_name='illnesstypeentry',
            index=models.Index(fields=['illness_type'], name='idx_illness_type_entry_type'),
        ),
        migrations.AddIndex(
            model_name='attachment',
            index=models.Index(fields=['child'], name='idx_attachment_child'),
        ),
        migrations.AddIndex(
            model_name='attachment',
            index=models.Index(fields=['visit'], name='idx_attachment_visit'),
        ),
        migrations.AddIndex(
            model_name='attachment',
            index=models.Index(fields=['measurement'], name='idx_attachment_measurement'),
        ),
        migrations.AddIndex(
            model_name='auditevent',
            index=models.Index(fields=['entity_type', 'entity_id', '-changed_at'], name='idx_audit_event_entity'),
        ),
        migrations.AddIndex(
            model_name='auditevent',
            index=models.Index(fields=['user', '-changed_at'], name='idx_audit_event_user'),
        ),
        migrations.AddIndex(
            model_name='auditevent',
            index=models.Index(fields=['-changed_at'], name='idx_audit_event_changed_at'),
        ),
    ]
