# Initial migration for core app: instance_settings

import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='InstanceSettings',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('registration_enabled', models.BooleanField(default=True)),
                ('default_family_name', models.CharField(default='My Family', max_length=255)),
                ('log_level', models.CharField(
                    choices=[('info', 'Info'), ('debug', 'Debug')],
                    default='info',
                    max_length=10
                )),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Instance Settings',
                'verbose_name_plural': 'Instance Settings',
                'db_table': 'instance_settings',
            },
        ),
    ]
