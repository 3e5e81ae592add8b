"""
Request descriptors passed from the host into plugin operations.
"""

from typing import Optional

from pydantic import BaseModel


class GetRequest(BaseModel):
    """
    Filter descriptor for getUsers/getGroups.

    ``attribute``/``operator``/``value`` are set for simple
    ``attribute op value`` filters; ``rawFilter`` is always set when the
    caller filtered at all. No fields set means "return everything".
    """
    attribute: Optional[str] = None
    operator: Optional[str] = None
    value: Optional[str] = None
    rawFilter: Optional[str] = None
    startIndex: Optional[int] = None
    count: Optional[int] = None


class RequestContext(BaseModel):
    """
    Per-request data forwarded by the host.

    ``authorization`` is only populated in pass-through mode.
    """
    authorization: Optional[str] = None
