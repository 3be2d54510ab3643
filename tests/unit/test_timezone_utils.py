from datetime import date, datetime, time, timezone, timedelta

import pytest

from app.core.timezone_utils import (
    convert_naive_to_gym_timezone,
    convert_utc_to_local,
    ensure_utc,
    iter_local_dates,
    local_date_time_to_utc,
    local_day_bounds_utc,
    local_midnight,
    local_weekday,
    normalize_to_utc,
    populate_session_timezone_fields,
    utc_to_local_date,
    utc_to_local_time,
    weekday_of,
)

ATHENS = "Europe/Athens"


def test_normalize_to_utc_naive_local():
    tz = 'America/New_York'
    # July 1, 2025 at 10:00 local (EDT is UTC-4)
    local_naive = datetime(2025, 7, 1, 10, 0, 0)
    utc_dt = normalize_to_utc(local_naive, tz)
    assert utc_dt.tzinfo is not None
    assert utc_dt.tzinfo == timezone.utc
    assert utc_dt.hour == 14 and utc_dt.minute == 0


def test_normalize_to_utc_aware_input():
    tz = 'America/New_York'
    # Aware +02:00 should convert to 08:00Z
    aware_dt = datetime(2025, 7, 1, 10, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    utc_dt = normalize_to_utc(aware_dt, tz)
    assert utc_dt.tzinfo == timezone.utc
    assert utc_dt.hour == 8 and utc_dt.minute == 0


def test_ensure_utc_treats_naive_as_utc():
    naive = datetime(2024, 3, 4, 16, 0)
    assert ensure_utc(naive) == datetime(2024, 3, 4, 16, 0, tzinfo=timezone.utc)


def test_convert_naive_rejects_aware_datetime():
    with pytest.raises(ValueError):
        convert_naive_to_gym_timezone(datetime(2024, 3, 4, 18, tzinfo=timezone.utc), ATHENS)


@pytest.mark.parametrize("value, expected", [
    (date(2024, 3, 3), 0),  # domingo
    (date(2024, 3, 4), 1),  # lunes
    (date(2024, 3, 9), 6),  # sábado
])
def test_weekday_of_uses_sunday_zero(value, expected):
    assert weekday_of(value) == expected


def test_local_weekday_uses_gym_calendar_day():
    # Domingo 23:30 UTC ya es lunes 01:30 en Atenas
    instant = datetime(2024, 3, 3, 23, 30, tzinfo=timezone.utc)
    assert local_weekday(instant, ATHENS) == 1
    assert local_weekday(instant, "UTC") == 0


def test_local_midnight_from_date_and_datetime():
    midnight = local_midnight(date(2024, 6, 10), ATHENS)
    # Verano: UTC+3
    assert midnight.astimezone(timezone.utc) == datetime(2024, 6, 9, 21, 0, tzinfo=timezone.utc)

    # Un datetime se lleva primero a su día local
    from_instant = local_midnight(datetime(2024, 6, 9, 22, 0, tzinfo=timezone.utc), ATHENS)
    assert from_instant == midnight


def test_local_date_time_round_trip():
    instant = local_date_time_to_utc(date(2024, 3, 4), time(18, 0), ATHENS)
    assert instant == datetime(2024, 3, 4, 16, 0, tzinfo=timezone.utc)
    assert utc_to_local_date(instant, ATHENS) == date(2024, 3, 4)
    assert utc_to_local_time(instant, ATHENS) == time(18, 0)


def test_round_trip_across_dst_change():
    # Atenas pasa a UTC+3 el 31 de marzo de 2024
    before = local_date_time_to_utc(date(2024, 3, 30), time(18, 0), ATHENS)
    after = local_date_time_to_utc(date(2024, 4, 1), time(18, 0), ATHENS)
    assert before.hour == 16
    assert after.hour == 15
    assert utc_to_local_time(before, ATHENS) == utc_to_local_time(after, ATHENS) == time(18, 0)


def test_local_day_bounds_are_inclusive():
    start_utc, end_utc = local_day_bounds_utc(date(2024, 3, 4), date(2024, 3, 5), ATHENS)
    assert start_utc == datetime(2024, 3, 3, 22, 0, tzinfo=timezone.utc)
    assert end_utc == datetime(2024, 3, 5, 21, 59, 59, 999999, tzinfo=timezone.utc)


def test_iter_local_dates_includes_both_ends():
    days = list(iter_local_dates(date(2024, 2, 28), date(2024, 3, 1)))
    assert days == [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]
    assert list(iter_local_dates(date(2024, 3, 2), date(2024, 3, 1))) == []


def test_convert_utc_to_local_keeps_instant():
    instant = datetime(2024, 7, 1, 6, 0, tzinfo=timezone.utc)
    local = convert_utc_to_local(instant, ATHENS)
    assert local.hour == 9
    assert local == instant


def test_populate_session_timezone_fields():
    data = {
        "id": 1,
        "start_time": datetime(2024, 3, 4, 16, 0),  # naive leído de la BD = UTC
        "end_time": "2024-03-04T17:00:00Z",
    }
    result = populate_session_timezone_fields(data, ATHENS)

    assert result["timezone"] == ATHENS
    assert result["start_time"] == datetime(2024, 3, 4, 16, 0, tzinfo=timezone.utc)
    assert result["start_time_local"] == datetime(2024, 3, 4, 18, 0)
    assert result["end_time_local"] == datetime(2024, 3, 4, 19, 0)
    # El original no se modifica
    assert "timezone" not in data
