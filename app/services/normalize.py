from __future__ import annotations

import datetime as dt
import re
import unicodedata

SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")
MAX_SLUG_LEN = 60

def slugify(text: str) -> str:
    # Fold accents to ASCII, then collapse everything else into single dashes
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = SLUG_STRIP_RE.sub("-", ascii_text.lower()).strip("-")
    slug = slug[:MAX_SLUG_LEN].rstrip("-")
    return slug or "article"

def object_key(title: str, ext: str, now: dt.datetime | None = None) -> str:
    # {epoch millis}-{slug}.{ext}
    now = now or dt.datetime.now(dt.timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt.timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"{millis}-{slugify(title)}.{ext.lstrip('.')}"
