# apps/classes/migrations/0001_initial.py

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ClassSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=120)),
                ('site_id', models.PositiveIntegerField(db_index=True, help_text='Site (sede) hosting the class.')),
                ('date', models.DateField()),
                ('time', models.TimeField()),
                ('duration_minutes', models.PositiveSmallIntegerField(default=60)),
                ('capacity', models.PositiveIntegerField()),
                ('enrolled_count', models.PositiveIntegerField(default=0, editable=False)),
                ('waitlist_clock', models.PositiveBigIntegerField(
                    default=0,
                    editable=False,
                    help_text='Logical clock used to order waitlist entries.',
                )),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Class session',
                'verbose_name_plural': 'Class sessions',
                'ordering': ['date', 'time'],
                'indexes': [
                    models.Index(fields=['site_id', 'date'], name='class_session_site_date_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(capacity__gte=1),
                        name='class_session_positive_capacity',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(enrolled_count__lte=models.F('capacity')),
                        name='class_session_enrolled_within_capacity',
                    ),
                ],
            },
        ),
    ]
