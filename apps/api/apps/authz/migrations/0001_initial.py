# Initial migration for authz app: auth_user, user_audit_log

import uuid
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('email', models.EmailField(max_length=255, unique=True)),
                ('username', models.CharField(blank=True, help_text='Display name', max_length=150)),
                ('is_active', models.BooleanField(default=True)),
                ('is_staff', models.BooleanField(default=False)),
                ('is_instance_admin', models.BooleanField(default=False, help_text='May manage users and instance settings. Not a family role.')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'db_table': 'auth_user',
            },
        ),
        migrations.CreateModel(
            name='UserAuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('action', models.CharField(
                    choices=[
                        ('create_user', 'Create User'),
                        ('update_user', 'Update User'),
                        ('grant_admin', 'Grant Instance Admin'),
                        ('revoke_admin', 'Revoke Instance Admin'),
                        ('deactivate_user', 'Deactivate User'),
                        ('activate_user', 'Activate User'),
                    ],
                    max_length=20
                )),
                ('metadata', models.JSONField(default=dict, help_text='Changed fields, before/after values, IP address')),
                ('actor_user', models.ForeignKey(blank=True, help_text='Admin user who performed the action', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='admin_actions', to='authz.user')),
                ('target_user', models.ForeignKey(help_text='User who was affected by the action', on_delete=django.db.models.deletion.CASCADE, related_name='audit_logs', to='authz.user')),
            ],
            options={
                'verbose_name': 'User Audit Log',
                'verbose_name_plural': 'User Audit Logs',
                'db_table': 'user_audit_log',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='user',
            index=models.Index(fields=['email'], name='idx_user_email'),
        ),
        migrations.AddIndex(
            model_name='user',
            index=models.Index(fields=['is_active'], name='idx_user_active'),
        ),
        migrations.AddIndex(
            model_name='userauditlog',
            index=models.Index(fields=['created_at'], name='idx_user_audit_created'),
        ),
        migrations.AddIndex(
            model_name='userauditlog',
            index=models.Index(fields=['actor_user'], name='idx_user_audit_actor'),
        ),
        migrations.AddIndex(
            model_name='userauditlog',
            index=models.Index(fields=['target_user'], name='idx_user_audit_target'),
        ),
        migrations.AddIndex(
            model_name='userauditlog',
            index=models.Index(fields=['action'], name='idx_user_audit_action'),
        ),
    ]
