from __future__ import annotations

"""Content-derived screen identity."""

import hashlib
from typing import List

from .elements import Element, Hierarchy


def element_signature(element: Element) -> str:
    # labels of static elements carry dynamic content (prices, timestamps ...)
    label = (element.label or "") if element.interactive else ""
    return f"{element.type.value}:{element.id or ''}:{label}"


def screen_fingerprint(hierarchy: Hierarchy) -> str:
    """Stable sha256 signature of a screen.

    Only structure counts: element types, identifiers and the labels of
    interactive elements, plus the detected screen category. Values and static
    text are ignored so that typing into a field does not create a new screen.
    """
    signatures: List[str] = sorted(element_signature(e) for e in hierarchy.elements)
    category = hierarchy.screen_category.value if hierarchy.screen_category else ""
    canon = "|".join(signatures) + f"#{category}"
    return hashlib.sha256(canon.encode("utf-8")).hexdigest()
