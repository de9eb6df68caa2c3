# storefront/utils/slug.py
import re
import unicodedata
from typing import Callable

_REPLACEMENTS = (("&", "and"), ("@", "at"), ("%", "percent"), ("+", "plus"))
MAX_SLUG_LENGTH = 60


def slugify(text: str) -> str:
    if not text or not text.strip():
        raise ValueError("Text is required to generate a slug")

    slug = unicodedata.normalize("NFKD", text.strip().lower())
    slug = "".join(ch for ch in slug if not unicodedata.combining(ch))
    for char, word in _REPLACEMENTS:
        slug = slug.replace(char, f" {word} ")

    slug = re.sub(r"[\s_.]+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]+", "", slug)
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    return slug[:MAX_SLUG_LENGTH].rstrip("-")


def unique_slug(base: str, exists: Callable[[str], bool]) -> str:
    """Append -1, -2, ... to `base` until `exists` says the slug is free."""
    candidate = base
    counter = 1
    while exists(candidate):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate
