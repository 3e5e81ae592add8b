"""
SQL Plugin Service

The eight SCIM operations backed by the SQL ``User`` table. Each call builds
its own connection configuration, opens a single-use connection, executes one
statement and releases the connection before returning or raising.

Example usage:
    plugin = SQLPlugin(settings.connection, plugin_name="plugin-mssql")

    await plugin.create_user("undefined", SCIMUserCreate(externalId="jdoe", active=True))
    result = await plugin.get_users(
        "undefined", GetRequest(attribute="id", operator="eq", value="jdoe")
    )
    # result.Resources[0].userName == "jdoe"
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..config import ConnectionSettings
from ..errors import NotSupportedError, QueryError
from ..models import (
    GetRequest,
    GroupQueryResult,
    RequestContext,
    SCIMGroupCreate,
    SCIMPatchRequest,
    SCIMUserCreate,
    SCIMUserModification,
    UserQueryResult,
)
from .connection import build_connection_config, open_connection
from .mapper import (
    group_to_insert_values,
    modification_to_update_values,
    row_to_scim_user,
    user_to_insert_values,
)
from .query_builder import (
    build_group_insert,
    build_user_delete,
    build_user_insert,
    build_user_select,
    build_user_update,
    render_sql,
)

logger = logging.getLogger(__name__)


class SQLPlugin:
    """
    SCIM provisioning plugin for a SQL user table.

    The plugin holds nothing but its static connection settings; all other
    state lives for the duration of a single call.
    """

    def __init__(self, connection: ConnectionSettings, plugin_name: str = "plugin-mssql"):
        """
        Args:
            connection: Static connection settings with secrets already resolved
            plugin_name: Name used as log prefix
        """
        self.connection = connection
        self.plugin_name = plugin_name

    def _log_prefix(self, base_entity: str) -> str:
        return f"{self.plugin_name}[{base_entity}]"

    def _execute(
        self,
        action: str,
        statement,
        ctx: Optional[RequestContext],
        fetch: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Run one statement on a fresh connection.

        Blocking; called through ``run_in_threadpool``.

        Returns:
            Result rows as dicts when ``fetch`` is set, otherwise an empty list

        Raises:
            DatabaseConnectionError: If the connection cannot be opened
            QueryError: If the statement fails
        """
        config = build_connection_config(self.connection, ctx)

        with open_connection(action, config) as connection:
            sql = render_sql(statement, connection.dialect)
            try:
                result = connection.execute(statement)
                rows = [dict(row) for row in result.mappings()] if fetch else []
                connection.commit()
            except IntegrityError as e:
                raise QueryError(action, sql, str(e.orig), conflict=True) from e
            except SQLAlchemyError as e:
                raise QueryError(action, sql, str(getattr(e, "orig", None) or e)) from e

        return rows

    async def get_users(
        self,
        base_entity: str,
        get_obj: GetRequest,
        attributes: Optional[List[str]] = None,
        ctx: Optional[RequestContext] = None,
    ) -> UserQueryResult:
        """
        Return users matching the filter descriptor.

        Only "no filter" and equality on id/userName/externalId are supported;
        attribute projection and paging are left to the host.

        Raises:
            UnsupportedFilterError: For any other filter
        """
        action = "getUsers"
        logger.debug(
            f'{self._log_prefix(base_entity)} handling "{action}" '
            f"getObj={get_obj.model_dump_json(exclude_none=True)} attributes={attributes or []}"
        )

        statement = build_user_select(action, get_obj)
        rows = await run_in_threadpool(self._execute, action, statement, ctx, True)

        return UserQueryResult(Resources=[row_to_scim_user(row) for row in rows], totalResults=None)

    async def create_user(
        self,
        base_entity: str,
        user_obj: SCIMUserCreate,
        ctx: Optional[RequestContext] = None,
    ) -> None:
        action = "createUser"
        logger.debug(
            f'{self._log_prefix(base_entity)} handling "{action}" '
            f"userObj={user_obj.model_dump_json(exclude_none=True, exclude={'password'})}"
        )

        statement = build_user_insert(user_to_insert_values(action, user_obj))
        await run_in_threadpool(self._execute, action, statement, ctx)

        logger.info(f"{self._log_prefix(base_entity)} created user {user_obj.externalId}")
        return None

    async def modify_user(
        self,
        base_entity: str,
        id: str,
        attr_obj: SCIMUserModification,
        ctx: Optional[RequestContext] = None,
    ) -> None:
        """
        Update the columns named in ``attr_obj`` for user ``id``.

        A modification that touches no column is a no-op: no connection is
        opened and no statement is issued.
        """
        action = "modifyUser"
        logger.debug(
            f'{self._log_prefix(base_entity)} handling "{action}" id={id} '
            f"attrObj={attr_obj.model_dump_json(exclude_none=True, exclude={'password'})}"
        )

        values = modification_to_update_values(attr_obj)
        if not values:
            logger.debug(f"{self._log_prefix(base_entity)} {action}: nothing to modify for {id}")
            return None

        statement = build_user_update(id, values)
        await run_in_threadpool(self._execute, action, statement, ctx)

        logger.info(f"{self._log_prefix(base_entity)} modified user {id}: {sorted(values)}")
        return None

    async def delete_user(
        self,
        base_entity: str,
        id: str,
        ctx: Optional[RequestContext] = None,
    ) -> None:
        action = "deleteUser"
        logger.debug(f'{self._log_prefix(base_entity)} handling "{action}" id={id}')

        await run_in_threadpool(self._execute, action, build_user_delete(id), ctx)

        logger.info(f"{self._log_prefix(base_entity)} deleted user {id}")
        return None

    async def get_groups(
        self,
        base_entity: str,
        get_obj: GetRequest,
        attributes: Optional[List[str]] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GroupQueryResult:
        """
        Groups are not read from the database; always returns no resources.
        """
        action = "getGroups"
        logger.debug(
            f'{self._log_prefix(base_entity)} handling "{action}" '
            f"getObj={get_obj.model_dump_json(exclude_none=True)} attributes={attributes or []}"
        )

        if get_obj.operator:
            if get_obj.operator == "eq" and get_obj.attribute in ("id", "displayName", "externalId"):
                kind = "unique group lookup"
            elif get_obj.operator == "eq" and get_obj.attribute == "members.value":
                kind = "groups of member lookup"
            else:
                kind = "simple filtering"
        elif get_obj.rawFilter:
            kind = "advanced filtering"
        else:
            kind = "all groups"

        logger.debug(f"{self._log_prefix(base_entity)} {action}: {kind} not backed by the database")
        return GroupQueryResult(Resources=[])

    async def create_group(
        self,
        base_entity: str,
        group_obj: SCIMGroupCreate,
        ctx: Optional[RequestContext] = None,
    ) -> None:
        """
        Insert a ``Group`` row. Members are not stored.
        """
        action = "createGroup"
        logger.debug(
            f'{self._log_prefix(base_entity)} handling "{action}" '
            f"groupObj={group_obj.model_dump_json(exclude_none=True)}"
        )

        statement = build_group_insert(group_to_insert_values(action, group_obj))
        await run_in_threadpool(self._execute, action, statement, ctx)

        # TODO: persist group_obj.members once a membership table exists
        if group_obj.members:
            logger.warning(
                f"{self._log_prefix(base_entity)} {action}: "
                f"{len(group_obj.members)} member(s) of {group_obj.externalId} not stored"
            )

        logger.info(f"{self._log_prefix(base_entity)} created group {group_obj.externalId}")
        return None

    async def delete_group(
        self,
        base_entity: str,
        id: str,
        ctx: Optional[RequestContext] = None,
    ) -> None:
        action = "deleteGroup"
        logger.debug(f'{self._log_prefix(base_entity)} handling "{action}" id={id}')
        raise NotSupportedError(action)

    async def modify_group(
        self,
        base_entity: str,
        id: str,
        attr_obj: SCIMPatchRequest,
        ctx: Optional[RequestContext] = None,
    ) -> None:
        action = "modifyGroup"
        logger.debug(
            f'{self._log_prefix(base_entity)} handling "{action}" id={id} '
            f"attrObj={attr_obj.model_dump_json(exclude_none=True)}"
        )
        raise NotSupportedError(action)
