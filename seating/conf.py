"""
Allocation engine options.

Values come from the ``SEAT_ALLOCATION`` dict in the Django settings and
fall back to the defaults below key by key.
"""

from django.conf import settings

DEFAULTS = {
    'DEFAULT_PATTERN': 'pattern2',
    'DEFAULT_GROUPING_KEY': 'department',
    'REPRESENTATIVE_ROOM_CAPACITY': None,
    'DEFAULT_ROOM_CAPACITY': 30,
    'UNALLOCATED_SAMPLE_SIZE': 10,
    'ASSIGN_INVIGILATORS': True,
}


def get_setting(name):
    if name not in DEFAULTS:
        raise KeyError(f"Unknown seat allocation setting: {name}")
    overrides = getattr(settings, 'SEAT_ALLOCATION', None) or {}
    return overrides.get(name, DEFAULTS[name])
