from __future__ import annotations

import datetime
import decimal
import pathlib
import uuid
from typing import Any

DEFAULT_IGNORED_BASE_TYPES: tuple[type[Any], ...] = (
    pathlib.PurePath,
    datetime.datetime,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    uuid.UUID,
    decimal.Decimal,
)
"""Value types that are never auto-constructed for typed parameters.

Builtins (``str``, ``int``, ``list``...) are always excluded as well.
"""
