"""Worldline descriptor parsing and event branch linkage.

Events carry free-text ``from_worldline``/``to_worldline`` descriptors in the
form ``"<name>: <percentage>%"``. Branch relationships between events are
inferred from these strings at render time; there is no stored parent key.
"""

import re
from collections.abc import Iterable

from worldlines.models import EventRow

_DESCRIPTOR_RE = re.compile(r"^\s*(?P<name>[^:]*?)\s*:\s*(?P<value>-?\d+(?:\.\d+)?)\s*%\s*$")
_VALUE_RE = re.compile(r"(-?\d+(?:\.\d+)?)\s*%")

# Substring every seeded color carries as its alpha component.
COLOR_ALPHA_TOKEN = "0.8"


def parse_descriptor(text: str | None) -> tuple[str, float] | None:
    """Split ``"β: 1.130205%"`` into ``("β", 1.130205)``. None if malformed."""
    if not text:
        return None
    match = _DESCRIPTOR_RE.match(text)
    if not match:
        return None
    return match.group("name"), float(match.group("value"))


def parse_worldline_value(text: str | None) -> float | None:
    """Pull the divergence percentage out of a descriptor, leniently."""
    if not text:
        return None
    match = _VALUE_RE.search(text)
    if not match:
        return None
    return float(match.group(1))


def transition_target(event: EventRow) -> float | None:
    """Value a jump to ``event`` should converge on, if it names one."""
    return parse_worldline_value(event.to_worldline)


def resolve_parent(event: EventRow, events_in_scope: Iterable[EventRow]) -> str | None:
    """Find the event whose branch line ``event`` forks from.

    A candidate matches when its id equals ``event.from_worldline``, when
    ``event.from_worldline`` contains its id, or when its ``to_worldline``
    equals ``event.from_worldline``. First match in iteration order wins;
    None means the event forks from the worldline's main line.
    """
    source = event.from_worldline
    if not source:
        return None
    for candidate in events_in_scope:
        if candidate.id == event.id or candidate.scope != event.scope:
            continue
        if candidate.id == source:
            return candidate.id
        if candidate.id and candidate.id in source:
            return candidate.id
        if candidate.to_worldline is not None and candidate.to_worldline == source:
            return candidate.id
    return None


def descendants(root_id: str, events_in_scope: list[EventRow]) -> list[EventRow]:
    """Events that branch (transitively) from ``root_id``, in list order."""
    parents = {e.id: resolve_parent(e, events_in_scope) for e in events_in_scope}
    result = []
    for event in events_in_scope:
        seen = {event.id}
        parent = parents.get(event.id)
        while parent is not None and parent not in seen:
            if parent == root_id:
                result.append(event)
                break
            seen.add(parent)
            parent = parents.get(parent)
    return result


def with_alpha(color: str, alpha: float | str) -> str:
    """Swap the alpha of an ``rgba(r, g, b, 0.8)`` color.

    Plain substring replacement of ``"0.8"``: colors whose alpha is not
    exactly ``0.8`` come back unchanged. Only the first occurrence is
    replaced.
    """
    return color.replace(COLOR_ALPHA_TOKEN, str(alpha), 1)
