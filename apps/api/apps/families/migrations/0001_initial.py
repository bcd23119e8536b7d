# Initial migration for families app: family, family_member, family_invite

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Family',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('default_owner', models.OneToOneField(
                    blank=True,
                    help_text='Set only on families created by the default family bootstrap',
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='default_family',
                    to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'verbose_name': 'Family',
                'verbose_name_plural': 'Families',
                'db_table': 'family',
            },
        ),
        migrations.CreateModel(
            name='FamilyMember',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(
                    choices=[('owner', 'Owner'), ('parent', 'Parent'), ('read_only', 'Read only')],
                    max_length=20
                )),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('family', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='members', to='families.family')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='family_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Family Member',
                'verbose_name_plural': 'Family Members',
                'db_table': 'family_member',
                'unique_together': {('family', 'user')},
            },
        ),
        migrations.CreateModel(
            name='FamilyInvite',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('role', models.CharField(
                    choices=[('owner', 'Owner'), ('parent', 'Parent'), ('read_only', 'Read only')],
                    max_length=20
                )),
                ('token_hash', models.CharField(max_length=64, unique=True)),
                ('expires_at', models.DateTimeField()),
                ('used_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='family_invites_created', to=settings.AUTH_USER_MODEL)),
                ('family', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='invites', to='families.family')),
                ('used_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='family_invites_used', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Family Invite',
                'verbose_name_plural': 'Family Invites',
                'db_table': 'family_invite',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='family',
            index=models.Index(fields=['created_at'], name='idx_family_created'),
        ),
        migrations.AddIndex(
            model_name='familymember',
            index=models.Index(fields=['user'], name='idx_family_member_user'),
        ),
        migrations.AddIndex(
            model_name='familymember',
            index=models.Index(fields=['family', 'role'], name='idx_family_member_role'),
        ),
        migrations.AddIndex(
            model_name='familyinvite',
            index=models.Index(fields=['family', 'used_at'], name='idx_family_invite_pending'),
        ),
        migrations.AddIndex(
            model_name='familyinvite',
            index=models.Index(fields=['expires_at'], name='idx_family_invite_expires'),
        ),
    ]
