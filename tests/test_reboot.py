import datetime

import pytest

from talemu.reboot import reboot_end_time, reboot_remaining

BASE = datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
DOWNTIME = datetime.timedelta(minutes=5)


def test_end_time_is_update_plus_downtime():
    end = reboot_end_time(BASE, DOWNTIME)
    assert end - BASE == DOWNTIME


def test_remaining_while_rebooting():
    now = BASE + datetime.timedelta(minutes=2)
    remaining = reboot_remaining(BASE, DOWNTIME, now)
    assert remaining + (now - BASE) == DOWNTIME


@pytest.mark.parametrize("delta", [DOWNTIME, DOWNTIME + datetime.timedelta(seconds=1)])
def test_done_after_downtime(delta):
    assert reboot_remaining(BASE, DOWNTIME, BASE + delta) is None


def test_zero_downtime_is_done():
    assert reboot_remaining(BASE, datetime.timedelta(0), BASE) is None


def test_default_now_far_in_past_is_done():
    past = datetime.datetime(2000, 1, 1, tzinfo=datetime.timezone.utc)
    assert reboot_remaining(past, DOWNTIME) is None


def test_default_now_future_update_is_pending():
    future = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(hours=1)
    remaining = reboot_remaining(future, DOWNTIME)
    assert remaining > DOWNTIME