from celery import Celery

# Worker and beat entry point: celery -A prayer_notify.celery worker|beat
celery = Celery("prayer_notify")
celery.config_from_object("prayer_notify.config.celeryconfig")
