# infrastructure/web/negotiation.py
# Deterministic Accept-header negotiation.

from typing import Optional, Sequence

from werkzeug.datastructures import MIMEAccept
from werkzeug.http import parse_accept_header

from application.errors import NotAcceptable

# Representations served by the paste endpoints, in order of preference.
ACCEPTED_TYPES: list[str] = [
    "text/html",
    "text/plain",
]


def _split_media_type(media_type: str) -> tuple[str, str]:
    """'Text/HTML; level=1' -> ('text', 'html'). A bare '*' means '*/*'."""
    base = media_type.split(";", 1)[0].strip().lower()
    if base == "*":
        return "*", "*"
    main, _, sub = base.partition("/")
    return main.strip(), (sub.strip() or "*")


def _client_weight(supported: str, ranges: list[tuple[str, str, float]]) -> float:
    """Weight the client gives *supported*: q of the most specific matching range."""
    s_main, s_sub = _split_media_type(supported)
    best_specificity = -1
    weight = 0.0
    for r_main, r_sub, q in ranges:
        if r_main == "*":
            specificity = 0
        elif r_main != s_main:
            continue
        elif r_sub == "*":
            specificity = 1
        elif r_sub == s_sub:
            specificity = 2
        else:
            continue
        # strict '>' keeps the first range seen at a given specificity
        if specificity > best_specificity:
            best_specificity = specificity
            weight = q
    return weight


def negotiate(accept_header: Optional[str], supported: Sequence[str]) -> str:
    """Pick the representation of *supported* the client prefers.

    The highest client weight wins; ties go to the type listed earliest in
    *supported*. A missing or blank header accepts anything. Raises
    NotAcceptable when every supported type has weight 0.
    """
    if not supported:
        raise ValueError("At least one supported media type is required.")

    if not accept_header or not accept_header.strip():
        return supported[0]

    accept: MIMEAccept = parse_accept_header(accept_header, MIMEAccept)
    ranges = [(*_split_media_type(value), quality) for value, quality in accept]
    if not ranges:
        # nothing parseable, same as no header at all
        return supported[0]

    chosen: Optional[str] = None
    chosen_weight = 0.0
    for media_type in supported:
        weight = _client_weight(media_type, ranges)
        if weight > chosen_weight:
            chosen, chosen_weight = media_type, weight

    if chosen is None:
        raise NotAcceptable(accept_header, list(supported))
    return chosen
