"""
PATCH Translation Service

Turns a SCIM PatchOp request into the flat modification record the plugin
works with. ``remove`` clears an attribute (empty string); ``add`` and
``replace`` set it. Paths the ``User`` table cannot hold are logged and
ignored.
"""

import logging
import re
from typing import Any, Dict

from ..models import OTHER_TYPE, SCIM_USER_SCHEMA, SCIMPatchRequest, SCIMUserModification

logger = logging.getLogger(__name__)

_NAME_PARTS = {
    "givenname": "givenName",
    "middlename": "middleName",
    "familyname": "familyName",
}

_MULTI_VALUED = {
    "emails": "emails",
    "phonenumbers": "phoneNumbers",
}

_USER_SCHEMA_PREFIX = f"{SCIM_USER_SCHEMA.lower()}:"

# emails[type eq "other"].value
_TYPED_PATH_RE = re.compile(
    r'^(\w+)\[\s*type\s+eq\s+"([^"]*)"\s*\](?:\.value)?$',
    re.IGNORECASE,
)


def _set_multi_value(changes: Dict[str, Any], attribute: str, type_: str, value: Any) -> None:
    if type_.lower() != OTHER_TYPE:
        logger.info(f"Ignoring {attribute} of type {type_!r}; only {OTHER_TYPE!r} is stored")
        return
    changes.setdefault(attribute, {})[OTHER_TYPE] = {"type": OTHER_TYPE, "value": value}


def _apply(changes: Dict[str, Any], op: str, path: str, value: Any) -> None:
    """Record one operation on one attribute path."""
    removing = op == "remove"
    key = path.strip()
    # urn:ietf:params:scim:schemas:core:2.0:User:name.givenName
    if key.lower().startswith(_USER_SCHEMA_PREFIX):
        key = key[len(_USER_SCHEMA_PREFIX):]
    lowered = key.lower()

    if lowered == "active":
        if removing:
            logger.info("Ignoring remove of 'active'")
            return
        changes["active"] = value
        return

    if lowered == "password":
        changes["password"] = "" if removing else value
        return

    if lowered == "name":
        if removing:
            for part in _NAME_PARTS.values():
                changes.setdefault("name", {})[part] = ""
            return
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                _apply(changes, op, f"name.{sub_key}", sub_value)
        return

    if lowered.startswith("name."):
        part = _NAME_PARTS.get(lowered[len("name."):])
        if part is None:
            logger.info(f"Ignoring unsupported attribute path {key!r}")
            return
        changes.setdefault("name", {})[part] = "" if removing else value
        return

    match = _TYPED_PATH_RE.match(key)
    if match and match.group(1).lower() in _MULTI_VALUED:
        attribute = _MULTI_VALUED[match.group(1).lower()]
        _set_multi_value(changes, attribute, match.group(2), "" if removing else value)
        return

    if lowered in _MULTI_VALUED:
        attribute = _MULTI_VALUED[lowered]
        if removing:
            _set_multi_value(changes, attribute, OTHER_TYPE, "")
            return
        items = value if isinstance(value, list) else [value]
        for item in items:
            if isinstance(item, dict):
                _set_multi_value(changes, attribute, item.get("type") or OTHER_TYPE, item.get("value"))
        return

    logger.info(f"Ignoring unsupported attribute path {key!r}")


def patch_to_modification(patch: SCIMPatchRequest) -> SCIMUserModification:
    """
    Collapse PATCH operations into a single modification record.

    Later operations on the same attribute win.

    Args:
        patch: SCIM PatchOp request body

    Returns:
        SCIMUserModification: Attributes to set or clear
    """
    changes: Dict[str, Any] = {}

    for operation in patch.Operations:
        op = operation.op.lower()
        if op not in ("add", "replace", "remove"):
            logger.info(f"Ignoring unsupported patch op {operation.op!r}")
            continue

        if operation.path:
            _apply(changes, op, operation.path, operation.value)
        elif isinstance(operation.value, dict) and op != "remove":
            for path, value in operation.value.items():
                _apply(changes, op, path, value)
        else:
            logger.info(f"Ignoring {op} operation without path")

    return SCIMUserModification.model_validate(changes)
