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
            name='Domain',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('base_url', models.URLField(unique=True)),
                ('hostname', models.CharField(db_index=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name='Link',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('url', models.URLField()),
                ('path', models.CharField(blank=True, db_index=True, max_length=500)),
                ('title', models.CharField(blank=True, max_length=300)),
                ('role', models.CharField(blank=True, choices=[('MONEY_PAGE', 'High-value conversion page'), ('STRATEGIC_PILLAR', 'Pillar / authority page'), ('STANDARD_CONTENT', 'Standard content')], max_length=32)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('domain', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='links', to='linkplacer.domain')),
            ],
            options={
                'unique_together': {('domain', 'url')},
            },
        ),
        migrations.CreateModel(
            name='PlacementRun',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('document_key', models.CharField(blank=True, db_index=True, max_length=255)),
                ('source_excerpt', models.TextField()),
                ('linked_html', models.TextField()),
                ('candidate_total', models.PositiveIntegerField(default=0)),
                ('accepted_total', models.PositiveIntegerField(default=0)),
                ('accepted_records', models.JSONField(blank=True, default=list)),
                ('rejection_counts', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('domain', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='placement_runs', to='linkplacer.domain')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='placement_runs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
    ]
