import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='CommissionTierAudit',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('operator_id', models.UUIDField(db_index=True, verbose_name='Operator')),
                ('actor_id', models.UUIDField(blank=True, null=True, verbose_name='Actor')),
                ('actor_name', models.CharField(blank=True, max_length=150, verbose_name='Actor name')),
                ('previous_tier', models.CharField(blank=True, choices=[('tier_1', 'Tier 1 (1%)'), ('tier_2', 'Tier 2 (2%)'), ('tier_3', 'Tier 3 (3%)')], max_length=10)),
                ('requested_tier', models.CharField(blank=True, max_length=10)),
                ('new_tier', models.CharField(blank=True, choices=[('tier_1', 'Tier 1 (1%)'), ('tier_2', 'Tier 2 (2%)'), ('tier_3', 'Tier 3 (3%)')], max_length=10)),
                ('change_type', models.CharField(blank=True, choices=[('upgrade', 'Upgrade'), ('downgrade', 'Downgrade')], max_length=10)),
                ('outcome', models.CharField(choices=[('applied', 'Applied'), ('rejected', 'Rejected'), ('errored', 'Errored'), ('auth_rejected', 'Authorization rejected')], db_index=True, max_length=20)),
                ('reason_code', models.CharField(blank=True, max_length=50)),
                ('qualification_snapshot', models.JSONField(blank=True, null=True)),
                ('financial_impact', models.JSONField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('recorded_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
            ],
            options={
                'verbose_name': 'Commission tier audit',
                'verbose_name_plural': 'Commission tier audit trail',
                'ordering': ['-recorded_at'],
                'indexes': [models.Index(fields=['operator_id', 'recorded_at'], name='operators_c_operato_5b1e2d_idx')],
            },
        ),
        migrations.CreateModel(
            name='Operator',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('operator_code', models.CharField(max_length=20, unique=True, verbose_name='Operator code')),
                ('business_name', models.CharField(max_length=200, verbose_name='Business name')),
                ('commission_tier', models.CharField(choices=[('tier_1', 'Tier 1 (1%)'), ('tier_2', 'Tier 2 (2%)'), ('tier_3', 'Tier 3 (3%)')], default='tier_1', max_length=10, verbose_name='Commission tier')),
                ('tier_qualification_date', models.DateField(blank=True, null=True, verbose_name='Current tier since')),
                ('partnership_start_date', models.DateField(blank=True, null=True, verbose_name='Partnership start date')),
                ('performance_score', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, verbose_name='Performance score (/100)')),
                ('payment_consistency', models.DecimalField(blank=True, decimal_places=2, help_text='Boundary fees paid on time over the last 6 months', max_digits=5, null=True, verbose_name='Payment consistency (%)')),
                ('utilization_percentile', models.DecimalField(blank=True, decimal_places=2, help_text='Vehicle utilization percentile within the region', max_digits=5, null=True, verbose_name='Utilization percentile')),
                ('last_qualification_status', models.CharField(blank=True, choices=[('qualified', 'Qualified'), ('below_threshold', 'Below threshold')], max_length=20, verbose_name='Last qualification status')),
                ('next_tier_evaluation_date', models.DateField(blank=True, null=True, verbose_name='Next tier evaluation')),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('primary_region', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='operators', to='core.region', verbose_name='Primary region')),
            ],
            options={
                'verbose_name': 'Operator',
                'verbose_name_plural': 'Operators',
                'ordering': ['business_name'],
                'permissions': [('manage_operators', 'Can manage operators'), ('update_commission_tier', 'Can request commission tier changes'), ('update_commission_tier_unrestricted', 'Can apply commission tier changes')],
                'indexes': [models.Index(fields=['primary_region', 'commission_tier'], name='operators_o_primary_8c4f1a_idx')],
            },
        ),
    ]
