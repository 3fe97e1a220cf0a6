from datetime import datetime, timezone

UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def format_byte_size(n: int | None) -> str:
    """Render a byte count with base-1024 units and at most two decimals.

    ``0`` is ``"0 Bytes"``; ``None`` (size never determined) is ``"Unknown"``.
    """
    if n is None:
        return "Unknown"
    if n <= 0:
        return "0 Bytes"
    # floor(log1024(n)) in integer arithmetic
    i = min((int(n).bit_length() - 1) // 10, len(UNITS) - 1)
    value = f"{n / 1024 ** i:.2f}".rstrip("0").rstrip(".")
    return f"{value} {UNITS[i]}"


def utc_today(now: datetime | None = None) -> str:
    """Calendar date in UTC, as used in download filenames."""
    return (now or datetime.now(timezone.utc)).astimezone(timezone.utc).date().isoformat()


def attachment_filename(stem: str, ext: str, today: str | None = None) -> str:
    return f'attachment; filename="{stem}-{today or utc_today()}.{ext}"'
