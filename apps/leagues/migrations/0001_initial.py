# Generated manually for the leagues app

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
            name='League',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('activity', models.CharField(max_length=40)),
                ('plan_tier', models.CharField(blank=True, choices=[('A', 'Plus'), ('B', 'Circle'), ('C', 'Team')], max_length=10, null=True)),
                ('month_key', models.CharField(max_length=7)),
                ('is_free', models.BooleanField(default=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('payment_required', 'Payment required'), ('completed', 'Completed')], default='active', max_length=20)),
                ('invite_code', models.CharField(db_index=True, editable=False, max_length=16, unique=True)),
                ('creation_key', models.CharField(blank=True, max_length=64, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='owned_leagues', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'leagues',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['owner', 'created_at'], name='leagues_owner_i_3c1d2a_idx'),
                    models.Index(fields=['invite_code'], name='leagues_invite__8e5b71_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('owner', 'creation_key'), name='unique_league_creation_key_per_owner'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LeagueMembership',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('role', models.CharField(choices=[('owner', 'Owner'), ('admin', 'Admin'), ('member', 'Member')], default='member', max_length=20)),
                ('joined_at', models.DateTimeField(auto_now_add=True)),
                ('league', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='leagues.league')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='league_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'league_memberships',
                'ordering': ['joined_at'],
                'unique_together': {('user', 'league')},
                'indexes': [
                    models.Index(fields=['league', 'role'], name='league_memb_league__0a7f4e_idx'),
                    models.Index(fields=['user', 'joined_at'], name='league_memb_user_id_5d92c8_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('role', 'owner')), fields=('league',), name='one_owner_per_league'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DailyLogEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('date', models.DateField()),
                ('completed', models.BooleanField(default=False)),
                ('written_at', models.DateTimeField()),
                ('league', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='daily_logs', to='leagues.league')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='daily_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'daily_log_entries',
                'ordering': ['date'],
                'indexes': [
                    models.Index(fields=['league', 'date'], name='daily_log_e_league__2b6e90_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('league', 'user', 'date'), name='one_log_per_member_per_day'),
                ],
            },
        ),
    ]
