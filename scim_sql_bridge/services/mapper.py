"""
Row/Resource Mapper

Converts ``User`` rows into SCIM users and SCIM payloads into column maps for
INSERT and UPDATE statements.
"""

from typing import Any, Dict, Mapping, Optional

from ..errors import InvalidValueError
from ..models import (
    OTHER_TYPE,
    SCIMGroupCreate,
    SCIMMultiValue,
    SCIMName,
    SCIMUser,
    SCIMUserCreate,
    SCIMUserModification,
)


def _present(value: Optional[str]) -> Optional[str]:
    # NULL and empty columns are both "not set"
    return value if value else None


def row_to_scim_user(row: Mapping[str, Any]) -> SCIMUser:
    """
    Map one ``User`` row to a SCIM user.

    UserID becomes ``id``, ``userName`` and ``externalId``. ``active`` is true
    only when Enabled is exactly ``"true"``.
    """
    user_id = _present(row.get("UserID"))
    mobile = _present(row.get("MobilePhone"))
    email = _present(row.get("Email"))

    return SCIMUser(
        id=user_id,
        userName=user_id,
        externalId=user_id,
        active=row.get("Enabled") == "true",
        name=SCIMName(
            givenName=_present(row.get("FirstName")),
            middleName=_present(row.get("MiddleName")),
            familyName=_present(row.get("LastName")),
        ),
        phoneNumbers=[SCIMMultiValue(type=OTHER_TYPE, value=mobile)] if mobile else None,
        emails=[SCIMMultiValue(type=OTHER_TYPE, value=email)] if email else None,
    )


def _enabled(active: Optional[bool]) -> str:
    return "true" if active else "false"


def user_to_insert_values(action: str, user_obj: SCIMUserCreate) -> Dict[str, Optional[str]]:
    """
    Column values for a new ``User`` row.

    Raises:
        InvalidValueError: If ``externalId`` is missing, since it becomes the
            primary key
    """
    if not user_obj.externalId:
        raise InvalidValueError(action, "externalId is required to create a user")

    return {
        "UserID": user_obj.externalId,
        "Enabled": _enabled(user_obj.active),
        "Password": user_obj.password or None,
        "FirstName": user_obj.name.givenName or None,
        "MiddleName": user_obj.name.middleName or None,
        "LastName": user_obj.name.familyName or None,
        "Email": user_obj.other_value("emails") or None,
        "MobilePhone": user_obj.other_value("phoneNumbers") or None,
    }


def modification_to_update_values(attr_obj: SCIMUserModification) -> Dict[str, Optional[str]]:
    """
    Column assignments for a user modification.

    Absent attributes are skipped, empty strings clear the column (NULL) and
    anything else sets it.
    """
    values: Dict[str, Optional[str]] = {}

    if attr_obj.active is not None:
        values["Enabled"] = _enabled(attr_obj.active)

    string_columns = (
        ("Password", attr_obj.password),
        ("FirstName", attr_obj.name.givenName),
        ("MiddleName", attr_obj.name.middleName),
        ("LastName", attr_obj.name.familyName),
        ("MobilePhone", attr_obj.other_value("phoneNumbers")),
        ("Email", attr_obj.other_value("emails")),
    )
    for column, value in string_columns:
        if value is None:
            continue
        values[column] = value if value != "" else None

    return values


def group_to_insert_values(action: str, group_obj: SCIMGroupCreate) -> Dict[str, Optional[str]]:
    """Column values for a new ``Group`` row."""
    if not group_obj.externalId:
        raise InvalidValueError(action, "externalId is required to create a group")

    return {
        "GroupID": group_obj.externalId,
        "DisplayName": group_obj.displayName or None,
    }
