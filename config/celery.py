import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("gear_rental")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Release stock held by unpaid bookings - every minute
    "expire-pending-bookings": {
        "task": "bookings.expire_pending_bookings",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
    # Confirmed bookings whose pickup day has come - every hour
    "activate-due-bookings": {
        "task": "bookings.activate_due_bookings",
        "schedule": crontab(minute=0),
    },
}
