import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("gym_booking")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Promote waiters into seats left free by rolled-back promotions - every minute
    "reconcile-waitlists": {
        "task": "bookings.reconcile_waitlists",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
}
