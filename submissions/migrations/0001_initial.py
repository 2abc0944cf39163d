# Generated migration for IntegrationSettings and FormMapping models

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='IntegrationSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('api_base', models.URLField(default='https://api.uk.exponea.com', max_length=255)),
                ('project', models.CharField(blank=True, default='', max_length=255)),
                ('token', models.CharField(blank=True, default='', max_length=512)),
                ('timeout', models.PositiveIntegerField(default=8)),
                ('consent_cache_minutes', models.PositiveIntegerField(default=60)),
                ('consent_event_schema', models.CharField(choices=[('consent', 'consent (action/category/valid_until)'), ('consent_granted', 'consent_granted (legacy)')], default='consent', max_length=32)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'integration settings',
                'verbose_name_plural': 'integration settings',
            },
        ),
        migrations.CreateModel(
            name='FormMapping',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveIntegerField(default=0)),
                ('form_id', models.PositiveIntegerField(db_index=True)),
                ('event_type', models.CharField(default='contact_forms', max_length=100)),
                ('consent_key', models.CharField(blank=True, default='', max_length=100)),
                ('email_field', models.CharField(default='your-email', max_length=100)),
                ('field_map', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['position', 'id'],
            },
        ),
        migrations.AddIndex(
            model_name='formmapping',
            index=models.Index(fields=['form_id', 'position'], name='formmapping_form_pos_idx'),
        ),
    ]
