# src/sannu/utils/slug_utils.py

import re
import secrets
import string
import unicodedata
from typing import Callable


def slugify(name: str, fallback: str = "item") -> str:
    """
    Convert any display name into a URL slug ("Acme & Co." -> "acme-co").
    """
    if not name:
        return fallback

    name = unicodedata.normalize("NFKD", name)
    name = name.encode("ascii", "ignore").decode("ascii")

    name = re.sub(r"[^a-zA-Z0-9]+", "-", name)
    name = name.strip("-")
    name = name.lower()

    return name or fallback


def unique_slug(name: str, exists: Callable[[str], bool], fallback: str = "item") -> str:
    """
    Slugify `name` and append -1, -2, ... until `exists(slug)` is False.
    """
    base = slugify(name, fallback)
    slug = base
    counter = 1
    while exists(slug):
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def random_string(length: int, alphabet: str = string.ascii_letters + string.digits) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))
