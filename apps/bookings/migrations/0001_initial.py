# apps/bookings/migrations/0001_initial.py

import django.db.models.deletion
from django.db import migrations, models


STATUS_CHOICES = [
    ('RESERVED', 'Reserved'),
    ('ATTENDED', 'Attended'),
    ('ABSENT', 'Absent'),
    ('CANCELLED', 'Cancelled'),
    ('WAITLIST', 'Waitlist'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('classes', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('user_id', models.CharField(
                    db_index=True,
                    help_text='Opaque user identifier issued by the identity provider.',
                    max_length=64,
                )),
                ('status', models.CharField(choices=STATUS_CHOICES, max_length=16)),
                ('cancelled_from', models.CharField(blank=True, choices=STATUS_CHOICES, max_length=16)),
                ('last_status_reason', models.CharField(blank=True, max_length=255)),
                ('status_changed_at', models.DateTimeField()),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField()),
                ('class_session', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='bookings',
                    to='classes.classsession',
                )),
            ],
            options={
                'verbose_name': 'Booking',
                'verbose_name_plural': 'Bookings',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['class_session', 'status'], name='booking_class_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('status', 'CANCELLED'), _negated=True),
                        fields=('class_session', 'user_id'),
                        name='booking_one_live_record_per_user_and_class',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='WaitlistEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('user_id', models.CharField(max_length=64)),
                ('joined_at', models.PositiveBigIntegerField(
                    help_text='Value of the session waitlist clock when the user joined.',
                )),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('booking', models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='waitlist_entry',
                    to='bookings.booking',
                )),
                ('class_session', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='waitlist_entries',
                    to='classes.classsession',
                )),
            ],
            options={
                'verbose_name': 'Waitlist entry',
                'verbose_name_plural': 'Waitlist entries',
                'ordering': ['joined_at', 'id'],
                'constraints': [
                    models.UniqueConstraint(
                        fields=('class_session', 'user_id'),
                        name='waitlist_one_entry_per_user_and_class',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='IdempotencyRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('key', models.CharField(max_length=128)),
                ('operation', models.CharField(max_length=32)),
                ('user_id', models.CharField(max_length=64)),
                ('response', models.JSONField(default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Idempotency record',
                'verbose_name_plural': 'Idempotency records',
                'constraints': [
                    models.UniqueConstraint(
                        fields=('key', 'operation', 'user_id'),
                        name='idempotency_key_per_operation_and_user',
                    ),
                ],
            },
        ),
    ]
