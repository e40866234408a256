import re
import unicodedata
from typing import Callable, Collection

MAX_SLUG_LENGTH = 200

_non_alnum = re.compile(r"[^a-z0-9]+")


def slugify(text: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """ASCII-fold, lower-case and dash-join ``text``."""
    normalized = unicodedata.normalize("NFKD", text or "")
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    slug = _non_alnum.sub("-", ascii_text).strip("-")
    if len(slug) > max_length:
        slug = slug[:max_length].rstrip("-")
    return slug


def unique_slug(
    text: str,
    exists: Callable[[str], bool],
    fallback: str = "item",
    reserved: Collection[str] = (),
) -> str:
    """Slug for ``text`` that ``exists`` reports as free, suffixed -1, -2, ... on collision.

    Slugs in ``reserved`` are always treated as taken.
    """
    def taken(slug: str) -> bool:
        return slug in reserved or exists(slug)

    base = slugify(text) or fallback
    if not taken(base):
        return base
    base = slugify(base, MAX_SLUG_LENGTH - 10)
    counter = 1
    while taken(f"{base}-{counter}"):
        counter += 1
    return f"{base}-{counter}"
