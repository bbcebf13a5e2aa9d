"""Plain-text rendering of fetched markup for terminal display."""

from __future__ import annotations

import re
from typing import List

from .identifier import Identifier

ENTITIES = {"&lt;": "<", "&gt;": ">"}
# Longest named character reference is 23 chars plus "&" and ";".
MAX_ENTITY_LENGTH = 25

_BODY_TAG_RE = re.compile(r"<body[\s>/]", re.IGNORECASE)


def _tag_name(raw: str) -> str:
    parts = raw.strip().split(None, 1)
    return parts[0].lower() if parts else ""


def escape_markup(source: str) -> str:
    """Escape angle brackets so markup survives render_text as visible text."""

    return source.replace("<", "&lt;").replace(">", "&gt;")


def render_text(source: str, only_body: bool = False) -> str:
    """Strip tags and decode the small fixed entity set.

    With ``only_body`` only text between ``<body>`` and ``</body>`` is kept.
    Unknown entities are passed through untouched.
    """

    out: List[str] = []
    tag: List[str] = []
    entity = ""
    in_angle = False
    in_body = False

    for ch in source:
        if ch == "<":
            out.append(entity)
            entity = ""
            in_angle = True
            tag = []
        elif ch == ">" and in_angle:
            name = _tag_name("".join(tag))
            if name == "body":
                in_body = True
            elif name == "/body":
                in_body = False
            in_angle = False
        elif in_angle:
            tag.append(ch)
        elif only_body and not in_body:
            continue
        elif ch == "&" or entity:
            if ch == "&" and entity:
                out.append(entity)
                entity = ""
            entity += ch
            if ch == ";":
                out.append(ENTITIES.get(entity, entity))
                entity = ""
            elif len(entity) > MAX_ENTITY_LENGTH:
                out.append(entity)
                entity = ""
        else:
            out.append(ch)

    out.append(entity)
    return "".join(out)


def present(body: str, identifier: Identifier) -> str:
    """Text to show for ``body`` fetched through ``identifier``."""

    if identifier.view_source:
        return render_text(escape_markup(body))
    if identifier.scheme.is_network and _BODY_TAG_RE.search(body):
        return render_text(body, only_body=True)
    return render_text(body)


__all__ = ["ENTITIES", "escape_markup", "render_text", "present"]
