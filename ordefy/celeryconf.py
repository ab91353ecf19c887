import logging
import os

from celery import Celery
from celery.signals import setup_logging

CELERY_LOGGER_NAME = "celery"


@setup_logging.connect
def setup_celery_logging(loglevel=None, **kwargs):
    """Skip celery's own logging setup and reuse the Django LOGGING config."""
    from logging import config

    from django.conf import settings

    config.dictConfig(settings.LOGGING)
    if loglevel:
        logging.getLogger(CELERY_LOGGER_NAME).setLevel(loglevel)


os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ordefy.settings")

app = Celery("ordefy")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
