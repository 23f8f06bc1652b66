"""Datetime helpers."""

from __future__ import annotations

import os
from datetime import datetime

import pendulum

DEFAULT_TZ = "UTC"


def timezone_name() -> str:
    return os.environ.get("TIMEZONE", DEFAULT_TZ)


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the way the catalog stores it."""
    return pendulum.now("UTC").naive()
