"""Tests for ISO week calculations."""

from datetime import datetime, timezone

import pytest

from match_scheduler.services.week_utils import (
    compute_expires_at,
    compute_scheduled_date,
    iso_week_id,
    iso_weeks_in_year,
    monday_of_week,
    parse_week_id,
)


@pytest.mark.parametrize("year, weeks", [(2020, 53), (2025, 52), (2026, 53)])
def test_iso_weeks_in_year(year, weeks):
    assert iso_weeks_in_year(year) == weeks


def test_week_one_can_start_in_previous_year():
    assert monday_of_week(2026, 1) == datetime(2025, 12, 29, tzinfo=timezone.utc)


def test_iso_week_id():
    assert iso_week_id(datetime(2026, 10, 17, 12, tzinfo=timezone.utc)) == "2026-42"
    # Friday Jan 1 2027 still belongs to the last week of 2026
    assert iso_week_id(datetime(2027, 1, 1, tzinfo=timezone.utc)) == "2026-53"


def test_parse_week_id():
    assert parse_week_id("2026-07") == (2026, 7)


@pytest.mark.parametrize("week_id", ["garbage", "2026", "2025-53", "2026-00"])
def test_parse_week_id_rejects_invalid(week_id):
    with pytest.raises(ValueError):
        parse_week_id(week_id)


def test_expires_at_is_end_of_sunday():
    assert compute_expires_at("2026-42") == datetime(2026, 10, 18, 23, 59, 59, 999000, tzinfo=timezone.utc)


def test_expires_at_falls_before_monday_run():
    """The Monday 00:15 run sees last week's deadline as overdue."""
    run_at = datetime(2026, 10, 19, 0, 15, tzinfo=timezone.utc)
    assert compute_expires_at("2026-42") < run_at
    assert compute_expires_at("2026-43") > run_at


def test_compute_scheduled_date():
    assert compute_scheduled_date("2026-05", "wed_2000") == "2026-01-28"
    assert compute_scheduled_date("2026-42", "sun_2130") == "2026-10-18"


def test_compute_scheduled_date_rejects_unknown_day():
    with pytest.raises(ValueError):
        compute_scheduled_date("2026-42", "xyz_2000")
