"""Timezone abbreviations seen as suffixes on compact NOTAM date tokens."""
from types import MappingProxyType
from typing import Optional

# Offsets from UTC in minutes. Local wall clock = UTC + offset.
TIMEZONE_OFFSETS = MappingProxyType({
    # UTC aliases
    'UTC': 0, 'GMT': 0, 'Z': 0, 'ZULU': 0,

    # North America, standard time
    'HST': -600, 'AKST': -540, 'PST': -480, 'MST': -420,
    'CST': -360, 'EST': -300, 'AST': -240, 'NST': -210,

    # North America, daylight time
    'AKDT': -480, 'PDT': -420, 'MDT': -360, 'CDT': -300,
    'EDT': -240, 'ADT': -180, 'NDT': -150,

    # Europe
    'WET': 0, 'WEST': 60, 'BST': 60, 'CET': 60,
    'CEST': 120, 'EET': 120, 'EEST': 180,

    # Asia / Pacific
    'AWST': 480, 'JST': 540, 'AEST': 600, 'AEDT': 660,
    'NZST': 720, 'NZDT': 780,
})

DEFAULT_TIMEZONE = 'UTC'


def get_offset_minutes(code: Optional[str]) -> Optional[int]:
    """Offset for ``code`` in minutes, or None when the code is unknown."""
    if not code:
        return TIMEZONE_OFFSETS[DEFAULT_TIMEZONE]
    return TIMEZONE_OFFSETS.get(code.strip().upper())
