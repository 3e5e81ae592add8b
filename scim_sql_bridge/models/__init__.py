"""
SCIM SQL Bridge Models Package

Pydantic models for SCIM 2.0 resources and operations.
"""

from .request import GetRequest, RequestContext
from .scim_group import (
    GroupQueryResult,
    SCIMGroup,
    SCIMGroupCreate,
    SCIMGroupMember,
)
from .scim_user import (
    OTHER_TYPE,
    SCIM_ERROR_SCHEMA,
    SCIM_GROUP_SCHEMA,
    SCIM_LIST_SCHEMA,
    SCIM_PATCH_SCHEMA,
    SCIM_USER_SCHEMA,
    SCIMError,
    SCIMListResponse,
    SCIMMultiValue,
    SCIMName,
    SCIMPatchOperation,
    SCIMPatchRequest,
    SCIMUser,
    SCIMUserCreate,
    SCIMUserModification,
    UserQueryResult,
)

__all__ = [
    "GetRequest",
    "RequestContext",
    "GroupQueryResult",
    "SCIMGroup",
    "SCIMGroupCreate",
    "SCIMGroupMember",
    "OTHER_TYPE",
    "SCIM_ERROR_SCHEMA",
    "SCIM_GROUP_SCHEMA",
    "SCIM_LIST_SCHEMA",
    "SCIM_PATCH_SCHEMA",
    "SCIM_USER_SCHEMA",
    "SCIMError",
    "SCIMListResponse",
    "SCIMMultiValue",
    "SCIMName",
    "SCIMPatchOperation",
    "SCIMPatchRequest",
    "SCIMUser",
    "SCIMUserCreate",
    "SCIMUserModification",
    "UserQueryResult",
]
