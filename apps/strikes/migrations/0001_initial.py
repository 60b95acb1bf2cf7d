# apps/strikes/migrations/0001_initial.py

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StrikeEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('user_id', models.CharField(max_length=64)),
                ('event_type', models.CharField(
                    choices=[('LATE_CANCELLATION', 'Late cancellation'), ('ABSENCE', 'Absence')],
                    max_length=32,
                )),
                ('occurred_at', models.DateTimeField()),
                ('booking_id', models.PositiveBigIntegerField(
                    blank=True,
                    help_text='Booking that caused the strike, if any.',
                    null=True,
                )),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Strike event',
                'verbose_name_plural': 'Strike events',
                'ordering': ['-occurred_at'],
                'indexes': [
                    models.Index(fields=['user_id', 'occurred_at'], name='strike_user_occurred_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StrikeStatus',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('user_id', models.CharField(max_length=64, unique=True)),
                ('restriction_until', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Strike status',
                'verbose_name_plural': 'Strike statuses',
            },
        ),
    ]
