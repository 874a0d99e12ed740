import re
import unicodedata
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

_NON_WORD = re.compile(r"[^a-z0-9\s_-]")
_SEPARATORS = re.compile(r"[\s_-]+")


def slugify(text: str, fallback: str = "item") -> str:
    """Build a URL-safe slug: "Sport Akce Žďár!" -> "sport-akce-zdar"."""
    normalized = unicodedata.normalize("NFD", text or "")
    stripped = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    slug = _NON_WORD.sub("", stripped.lower())
    slug = _SEPARATORS.sub("-", slug).strip("-")
    return slug or fallback


async def unique_slug(
    db: AsyncSession,
    model,
    base: str,
    *,
    exclude_id: Optional[int] = None,
) -> str:
    """Return ``base`` or the first free ``base-N`` for ``model.slug``."""
    candidate = base
    suffix = 0
    while True:
        stmt = select(model.id).where(model.slug == candidate)
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)
        taken = (await db.execute(stmt.limit(1))).scalar_one_or_none()
        if taken is None:
            return candidate
        suffix += 1
        candidate = f"{base}-{suffix}"
