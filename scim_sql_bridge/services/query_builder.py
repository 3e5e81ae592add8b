"""
Query Builder Service

SQLAlchemy Core definitions of the fixed ``User`` and ``Group`` tables and the
statements issued against them. Values are always bound parameters; the
rendered SQL text only ever shows placeholders.

Expected table layout (SQL Server):

    CREATE TABLE [dbo].[User](
      [UserID] [varchar](50) NOT NULL PRIMARY KEY,
      [Enabled] [varchar](50) NULL,
      [Password] [varchar](50) NULL,
      [FirstName] [varchar](50) NULL,
      [MiddleName] [varchar](50) NULL,
      [LastName] [varchar](50) NULL,
      [Email] [varchar](50) NULL,
      [MobilePhone] [varchar](50) NULL
    )
"""

from typing import Dict, Optional

from sqlalchemy import Column, MetaData, String, Table, delete, insert, select, update
from sqlalchemy.engine import Dialect
from sqlalchemy.sql import ClauseElement

from ..errors import UnsupportedFilterError
from ..models import GetRequest

metadata = MetaData()

user_table = Table(
    "User",
    metadata,
    Column("UserID", String(50), primary_key=True),
    Column("Enabled", String(50)),
    Column("Password", String(50)),
    Column("FirstName", String(50)),
    Column("MiddleName", String(50)),
    Column("LastName", String(50)),
    Column("Email", String(50)),
    Column("MobilePhone", String(50)),
)

group_table = Table(
    "Group",
    metadata,
    Column("GroupID", String(50), primary_key=True),
    Column("DisplayName", String(50)),
)

# Attributes that all resolve to UserID
UNIQUE_USER_ATTRIBUTES = ("id", "userName", "externalId")

# Insert column order
USER_COLUMNS = (
    "UserID",
    "Enabled",
    "Password",
    "FirstName",
    "MiddleName",
    "LastName",
    "Email",
    "MobilePhone",
)


def build_user_select(action: str, get_obj: GetRequest):
    """
    Build the SELECT for a getUsers request.

    Args:
        action: Operation name used in error messages
        get_obj: Filter descriptor from the host

    Returns:
        Select statement

    Raises:
        UnsupportedFilterError: For any filter other than equality on
            id/userName/externalId
    """
    if get_obj.operator:
        if get_obj.operator == "eq" and get_obj.attribute in UNIQUE_USER_ATTRIBUTES:
            return select(user_table).where(user_table.c.UserID == get_obj.value)
        if get_obj.operator == "eq" and get_obj.attribute == "group.value":
            raise UnsupportedFilterError(
                action, f"not supporting groups member of user filtering: {get_obj.rawFilter}"
            )
        raise UnsupportedFilterError(action, f"not supporting simple filtering: {get_obj.rawFilter}")

    if get_obj.rawFilter:
        raise UnsupportedFilterError(action, f"not supporting advanced filtering: {get_obj.rawFilter}")

    return select(user_table)


def build_user_insert(values: Dict[str, Optional[str]]):
    """INSERT of all eight user columns; missing keys are inserted as NULL."""
    return insert(user_table).values({column: values.get(column) for column in USER_COLUMNS})


def build_user_update(user_id: str, values: Dict[str, Optional[str]]):
    """
    UPDATE of the given columns for one user.

    The row is matched exactly on UserID, so ids containing ``%`` or ``_``
    never touch other rows.
    """
    if not values:
        raise ValueError("update requires at least one column")
    return update(user_table).where(user_table.c.UserID == user_id).values(values)


def build_user_delete(user_id: str):
    return delete(user_table).where(user_table.c.UserID == user_id)


def build_group_insert(values: Dict[str, Optional[str]]):
    return insert(group_table).values(
        GroupID=values.get("GroupID"),
        DisplayName=values.get("DisplayName"),
    )


def render_sql(statement: ClauseElement, dialect: Optional[Dialect] = None) -> str:
    """Render a statement as SQL text with parameter placeholders."""
    if dialect is None:
        return " ".join(str(statement).split())
    return " ".join(str(statement.compile(dialect=dialect)).split())
