import io
import json
import re
import zipfile
from datetime import datetime, timezone
from pydantic import BaseModel

from app.core.formatting import format_byte_size

DEFAULT_MANIFEST = "metadata.json"


class ArchiveItem(BaseModel):
    source_id: str
    filename: str | None = None
    data: bytes | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.data is not None and self.error is None


def error_entry_name(source_id: str) -> str:
    return f"ERROR_{re.sub(r'[^a-zA-Z0-9_-]', '_', source_id)}.txt"


def build_archive(
    items: list[ArchiveItem],
    manifest_extra: dict | None = None,
    *,
    manifest_name: str = DEFAULT_MANIFEST,
    compresslevel: int = 1,
) -> bytes:
    """Zip the items in memory plus an indented JSON manifest.

    Failed items become ``ERROR_<id>.txt`` entries. Deflate level 1 trades
    ratio for speed. Raises ``ValueError`` when nothing succeeded.
    """
    succeeded = [i for i in items if i.ok]
    if not succeeded:
        raise ValueError("archive needs at least one successful item")

    total = sum(len(i.data) for i in succeeded)
    manifest = {
        "downloadDate": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "itemCount": len(succeeded),
        "failedCount": len(items) - len(succeeded),
        "totalSize": format_byte_size(total),
        **(manifest_extra or {}),
    }

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=compresslevel) as zf:
        for item in items:
            if item.ok:
                zf.writestr(item.filename or item.source_id, item.data)
            else:
                zf.writestr(error_entry_name(item.source_id), f"Failed to download: {item.error}")
        zf.writestr(manifest_name, json.dumps(manifest, indent=2, default=str))
    return buf.getvalue()
