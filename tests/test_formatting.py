from datetime import datetime, timedelta, timezone

import pytest

from app.core.formatting import attachment_filename, format_byte_size, utc_today


@pytest.mark.parametrize(
    "n, expected",
    [
        (0, "0 Bytes"),
        (1, "1 Bytes"),
        (1023, "1023 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1234567, "1.18 MB"),
        (1024 ** 3, "1 GB"),
        (5 * 1024 ** 4, "5 TB"),
    ],
)
def test_format_byte_size(n, expected):
    assert format_byte_size(n) == expected


def test_format_byte_size_caps_at_largest_unit():
    assert format_byte_size(2048 * 1024 ** 4) == "2048 TB"


def test_unknown_size_is_not_zero():
    assert format_byte_size(None) == "Unknown"
    assert format_byte_size(None) != format_byte_size(0)


def test_attachment_filename():
    assert attachment_filename("luma-videos", "zip", "2024-01-20") == 'attachment; filename="luma-videos-2024-01-20.zip"'


def test_utc_today_uses_utc_calendar_date():
    # 01:00 at UTC+5 is still the previous day in UTC
    local = datetime(2024, 3, 1, 1, 0, tzinfo=timezone(timedelta(hours=5)))
    assert utc_today(local) == "2024-02-29"


def test_attachment_filename_defaults_to_utc_date():
    assert attachment_filename("x", "txt") == f'attachment; filename="x-{utc_today()}.txt"'
