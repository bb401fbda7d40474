"""Deterministic slugs for handles and category keys."""

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """
    Lowercase ``text``, collapse every run of non-alphanumeric characters
    into a single hyphen and trim hyphens from both ends.

        >>> slugify("  Essence Mascara -- Lash Princess! ")
        'essence-mascara-lash-princess'
    """
    return _NON_ALNUM.sub("-", str(text).lower()).strip("-")
