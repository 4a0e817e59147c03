"""
Settings for the exam seating project.

Only the pieces the allocation engine needs are configured here: the
database, the seating app, logging and the SEAT_ALLOCATION options.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'exam-seating-dev-key')
DEBUG = os.environ.get('DJANGO_DEBUG', 'False').lower() == 'true'
ALLOWED_HOSTS = ['*']

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'seating',
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('SEATING_DB_PATH', str(BASE_DIR / 'db.sqlite3')),
        'OPTIONS': {
            'timeout': 30,  # seconds to wait for a competing writer
        },
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

USE_TZ = True
TIME_ZONE = 'UTC'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '[{asctime}] {levelname} {name}: {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
        'seating': {
            'handlers': ['console'],
            'level': os.environ.get('SEATING_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}

# Seat allocation engine options (see seating/conf.py for the defaults)
SEAT_ALLOCATION = {
    'DEFAULT_PATTERN': 'pattern2',
    'DEFAULT_GROUPING_KEY': 'department',
    'REPRESENTATIVE_ROOM_CAPACITY': None,  # None: use the first room's capacity
    'DEFAULT_ROOM_CAPACITY': 30,
    'UNALLOCATED_SAMPLE_SIZE': 10,
    'ASSIGN_INVIGILATORS': True,
}
