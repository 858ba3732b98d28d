"""Development settings for the gear rental engine.

This module extends the base settings with development specific
configuration, such as enabling debug, allowing all hosts and running
Celery tasks eagerly. Do not use these settings in production!
"""

from .base import *  # noqa: F401,F403

# Enable debug mode for development
DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ['*']

# Plain static storage; no manifest needed without collectstatic
STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

# Log engine decisions verbosely while developing
LOGGING['loggers']['apps']['level'] = 'DEBUG'  # noqa: F405
