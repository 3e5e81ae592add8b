"""
SCIM 2.0 Group Resource Models

Groups are only partially backed by the database: creation writes the
``Group`` table, listing always returns nothing.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SCIMGroupMember(BaseModel):
    """SCIM group member reference"""
    value: str  # User ID
    display: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class SCIMGroup(BaseModel):
    """
    SCIM 2.0 Group Resource (simplified)

    ``id`` and ``displayName`` usually carry the same group name.
    """
    id: Optional[str] = None
    displayName: Optional[str] = None
    members: List[SCIMGroupMember] = Field(default_factory=list)


class SCIMGroupCreate(BaseModel):
    """SCIM 2.0 Group creation payload"""
    externalId: Optional[str] = None
    displayName: Optional[str] = None
    members: List[SCIMGroupMember] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class GroupQueryResult(BaseModel):
    """Result of a group query"""
    Resources: List[SCIMGroup] = Field(default_factory=list)
    totalResults: Optional[int] = None
