"""SCIM filter expression parsing (RFC 7644 §3.4.2.2).

Only the ``attribute SP operator SP value`` form is broken down into the
filter descriptor. Anything else (``and``/``or``/``not``, grouping, ``pr``)
is passed on as ``rawFilter`` only, and the plugin decides whether it can
serve it.
"""

import re
from typing import Optional

from ..models import GetRequest

_OPERATORS = "eq|ne|co|sw|ew|gt|ge|lt|le"

# attribute operator "value" | 'value' | bare-value
_FILTER_RE = re.compile(
    r"^(\S+)\s+(" + _OPERATORS + r")\s+"
    r'(?:"((?:[^"\\]|\\.)*)"'
    r"|'([^']*)'"
    r"|(\S+))$",
    re.IGNORECASE,
)

# Attribute names are case-insensitive; known ones get their canonical spelling
_CANONICAL_ATTRIBUTES = {
    name.lower(): name
    for name in ("id", "userName", "externalId", "displayName", "members.value", "group.value")
}

_QUOTED_RE = re.compile(r'"(?:[^"\\]|\\.)*"')

_LOGICAL_RE = re.compile(r"\s(and|or)\s|^not\s*\(|[()\[\]]", re.IGNORECASE)


def parse_filter(
    filter_string: Optional[str],
    start_index: Optional[int] = None,
    count: Optional[int] = None,
) -> GetRequest:
    """Build a filter descriptor from a ``filter`` query parameter.

    Args:
        filter_string: Raw filter, e.g. ``'userName eq "jdoe"'``
        start_index: 1-based paging start from the request
        count: Page size from the request

    Returns:
        GetRequest with attribute/operator/value set for simple expressions
        and ``rawFilter`` set whenever a filter was given.
    """
    get_obj = GetRequest(startIndex=start_index, count=count)
    if not filter_string or not filter_string.strip():
        return get_obj

    raw = filter_string.strip()
    get_obj.rawFilter = raw

    # logical operators only count outside quoted values
    if _LOGICAL_RE.search(_QUOTED_RE.sub('""', raw)):
        return get_obj

    match = _FILTER_RE.match(raw)
    if not match:
        return get_obj

    quoted, single_quoted, bare = match.group(3), match.group(4), match.group(5)
    if quoted is not None:
        value = re.sub(r"\\(.)", r"\1", quoted)
    elif single_quoted is not None:
        value = single_quoted
    else:
        value = bare

    attribute = match.group(1)
    get_obj.attribute = _CANONICAL_ATTRIBUTES.get(attribute.lower(), attribute)
    get_obj.operator = match.group(2).lower()
    get_obj.value = value
    return get_obj
