"""Timing of simulated machine reboots."""

from __future__ import annotations

import datetime


def reboot_end_time(
    updated: datetime.datetime, downtime: datetime.timedelta
) -> datetime.datetime:
    """Return the moment a reboot requested at ``updated`` is over."""
    return updated + downtime


def reboot_remaining(
    updated: datetime.datetime,
    downtime: datetime.timedelta,
    now: datetime.datetime | None = None,
) -> datetime.timedelta | None:
    """Return the time left until the reboot ends, or ``None`` once it is done."""
    if now is None:
        now = datetime.datetime.now(updated.tzinfo)

    end = reboot_end_time(updated, downtime)
    if now < end:
        return end - now

    return None