"""
SCIM 2.0 User Resource Models

Pydantic models for SCIM 2.0 User resources compliant with RFC 7643, limited to
the attributes the SQL ``User`` table can hold.

Inbound multi-valued attributes (``emails``, ``phoneNumbers``) are indexed by
their ``type`` (``{"other": {"value": "..."}}``); plain SCIM lists are accepted
and re-indexed. Outbound users carry the usual list form.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# SCIM 2.0 Schema URNs
SCIM_USER_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:User"
SCIM_GROUP_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:Group"
SCIM_PATCH_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:PatchOp"
SCIM_LIST_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:ListResponse"
SCIM_ERROR_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:Error"

# The only multi-value type the SQL table stores
OTHER_TYPE = "other"


class SCIMName(BaseModel):
    """SCIM name complex attribute"""
    givenName: Optional[str] = None
    middleName: Optional[str] = None
    familyName: Optional[str] = None


class SCIMMultiValue(BaseModel):
    """SCIM multi-valued attribute entry (email, phone number)"""
    value: Optional[str] = None
    type: Optional[str] = OTHER_TYPE

    model_config = ConfigDict(extra="allow")


def _index_by_type(v: Any) -> Any:
    """Turn a SCIM list of typed values into a dict keyed by type."""
    if v is None:
        return {}
    if isinstance(v, list):
        indexed = {}
        for item in v:
            if isinstance(item, dict):
                indexed[item.get("type") or OTHER_TYPE] = item
        return indexed
    return v


class SCIMUser(BaseModel):
    """
    SCIM 2.0 User Resource

    Outbound representation of one row of the ``User`` table. ``id``,
    ``userName`` and ``externalId`` always carry the same UserID.
    """
    id: Optional[str] = None
    userName: Optional[str] = None
    externalId: Optional[str] = None
    active: bool = False
    name: SCIMName = Field(default_factory=SCIMName)
    emails: Optional[List[SCIMMultiValue]] = None
    phoneNumbers: Optional[List[SCIMMultiValue]] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "jdoe",
                "userName": "jdoe",
                "externalId": "jdoe",
                "active": True,
                "name": {"givenName": "Jane"},
                "emails": [{"type": "other", "value": "j@x.com"}],
            }
        }
    )


class SCIMUserCreate(BaseModel):
    """
    SCIM 2.0 User creation payload

    Missing ``name``, ``emails`` and ``phoneNumbers`` containers default to
    empty structures so the mapper never has to check for them.
    """
    externalId: Optional[str] = None
    userName: Optional[str] = None
    active: Optional[bool] = None
    password: Optional[str] = None
    name: SCIMName = Field(default_factory=SCIMName)
    emails: Dict[str, SCIMMultiValue] = Field(default_factory=dict)
    phoneNumbers: Dict[str, SCIMMultiValue] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")

    @field_validator("emails", "phoneNumbers", mode="before")
    @classmethod
    def index_multi_values(cls, v):
        return _index_by_type(v)

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, v):
        return {} if v is None else v

    def other_value(self, attribute: str) -> Optional[str]:
        """Value of the ``type=other`` entry of ``emails`` or ``phoneNumbers``."""
        entry = getattr(self, attribute).get(OTHER_TYPE)
        return entry.value if entry else None


class SCIMUserModification(SCIMUserCreate):
    """
    SCIM 2.0 User modification

    Every field is one of: absent (``None``, column left unchanged), empty
    string (column cleared to NULL) or a value (column set).
    """


class SCIMPatchOperation(BaseModel):
    """
    SCIM PATCH operation

    Represents a single operation in a PATCH request (add, remove, replace).
    """
    op: str  # Operation: "add", "remove", "replace"
    path: Optional[str] = None  # Attribute path (e.g., "active", "name.givenName")
    value: Optional[Any] = None  # Operation value

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "op": "replace",
                "path": "name.givenName",
                "value": "Jane",
            }
        }
    )


class SCIMPatchRequest(BaseModel):
    """
    SCIM 2.0 PATCH Request

    Used for partial updates to user and group resources.
    """
    schemas: List[str] = Field(default=[SCIM_PATCH_SCHEMA])
    Operations: List[SCIMPatchOperation]  # List of operations to apply


class UserQueryResult(BaseModel):
    """
    Result of a user query

    ``totalResults`` is left unset; paging is the host's job.
    """
    Resources: List[SCIMUser] = Field(default_factory=list)
    totalResults: Optional[int] = None


class SCIMListResponse(BaseModel):
    """
    SCIM 2.0 List Response

    Used for GET /Users and GET /Groups.
    """
    schemas: List[str] = Field(default=[SCIM_LIST_SCHEMA])
    totalResults: int
    startIndex: int = 1
    itemsPerPage: int
    Resources: List[Dict[str, Any]]


class SCIMError(BaseModel):
    """
    SCIM 2.0 Error Response

    Standard error format for SCIM API responses.
    """
    schemas: List[str] = Field(default=[SCIM_ERROR_SCHEMA])
    status: str  # HTTP status code, a string per RFC 7644
    detail: Optional[str] = None  # Error detail message
    scimType: Optional[str] = None  # SCIM error type

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "schemas": [SCIM_ERROR_SCHEMA],
                "status": "400",
                "scimType": "invalidFilter",
                "detail": "getUsers error: not supporting simple filtering: displayName eq \"x\"",
            }
        }
    )
