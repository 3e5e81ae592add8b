"""
SCIM SQL Bridge - Main FastAPI Application

This FastAPI application exposes the SQL plugin as SCIM 2.0 endpoints. It is a
thin host: it authenticates requests (or forwards credentials in pass-through
mode), turns query parameters and PatchOp bodies into the plugin's request
objects, pages and projects results, and renders plugin errors as SCIM errors.

Endpoints (also served below /{base_entity}/scim/v2):
- GET /health - Health check
- GET /scim/v2/Users - List/filter users
- GET /scim/v2/Users/{user_id} - Get one user
- POST /scim/v2/Users - Create user
- PATCH /scim/v2/Users/{user_id} - Modify user
- DELETE /scim/v2/Users/{user_id} - Delete user
- GET /scim/v2/Groups - List groups (always empty)
- POST /scim/v2/Groups - Create group
- PATCH /scim/v2/Groups/{group_id} - Not supported
- DELETE /scim/v2/Groups/{group_id} - Not supported
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import SQLBridgeSettings, load_settings
from .errors import PluginError
from .handlers import get_request_context, verify_bearer_token
from .models import (
    GetRequest,
    RequestContext,
    SCIM_GROUP_SCHEMA,
    SCIM_USER_SCHEMA,
    SCIMError,
    SCIMGroupCreate,
    SCIMListResponse,
    SCIMPatchRequest,
    SCIMUser,
    SCIMUserCreate,
)
from .services import SQLPlugin, parse_filter, patch_to_modification

logger = logging.getLogger(__name__)

VERSION = "1.0.0"
SCIM_CONTENT_TYPE = "application/scim+json"

# Base entity used when the request path does not name one
DEFAULT_BASE_ENTITY = "undefined"

router = APIRouter(dependencies=[Depends(verify_bearer_token)])


def get_plugin(request: Request) -> SQLPlugin:
    return request.app.state.plugin


def scim_response(content: Any, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(
        content=content,
        status_code=status_code,
        headers={"Content-Type": SCIM_CONTENT_TYPE},
    )


def scim_error(status_code: int, detail: str, scim_type: Optional[str] = None) -> JSONResponse:
    error_response = SCIMError(status=str(status_code), detail=detail, scimType=scim_type)
    return scim_response(error_response.model_dump(exclude_none=True), status_code)


def user_resource(user: SCIMUser, request: Request) -> Dict[str, Any]:
    # The id is fully quoted; user routes take a path parameter, so "/" survives decoding
    resource = {"schemas": [SCIM_USER_SCHEMA], **user.model_dump(exclude_none=True)}
    resource["meta"] = {
        "resourceType": "User",
        "location": f"{str(request.base_url).rstrip('/')}/scim/v2/Users/{quote(user.id or '', safe='')}",
    }
    return resource


def project_attributes(resource: Dict[str, Any], attributes: List[str]) -> Dict[str, Any]:
    """
    Keep only the requested attributes (plus ``id`` and ``schemas``).

    Sub-attributes such as ``name.givenName`` keep just that member.
    """
    if not attributes:
        return resource

    projected = {key: resource[key] for key in ("schemas", "id") if key in resource}
    by_lower = {key.lower(): key for key in resource}

    for attribute in attributes:
        top, _, sub = attribute.partition(".")
        key = by_lower.get(top.lower())
        if key is None:
            continue
        value = resource[key]
        if sub and isinstance(value, dict):
            sub_key = next((k for k in value if k.lower() == sub.lower()), None)
            if sub_key is not None:
                projected.setdefault(key, {})[sub_key] = value[sub_key]
        else:
            projected[key] = value

    return projected


def split_attributes(attributes: Optional[str]) -> List[str]:
    if not attributes:
        return []
    return [a.strip() for a in attributes.split(",") if a.strip()]


def page(resources: List[Dict[str, Any]], start_index: int, count: Optional[int]) -> SCIMListResponse:
    """Slice an already-filtered resource list into a SCIM ListResponse."""
    start = start_index - 1  # Convert to 0-based
    end = None if count is None else start + count
    page_resources = resources[start:end]
    return SCIMListResponse(
        totalResults=len(resources),
        startIndex=start_index,
        itemsPerPage=len(page_resources),
        Resources=page_resources,
    )


def unique_user_request(user_id: str) -> GetRequest:
    return GetRequest(attribute="id", operator="eq", value=user_id, rawFilter=f'id eq "{user_id}"')


async def fetch_user(
    plugin: SQLPlugin, base_entity: str, user_id: str, ctx: RequestContext
) -> Optional[SCIMUser]:
    result = await plugin.get_users(base_entity, unique_user_request(user_id), ctx=ctx)
    return result.Resources[0] if result.Resources else None


@router.get("/Users")
async def list_users(
    request: Request,
    base_entity: str = DEFAULT_BASE_ENTITY,
    filter: Optional[str] = None,
    startIndex: int = Query(1, ge=1),
    count: Optional[int] = Query(None, ge=0),
    attributes: Optional[str] = None,
    plugin: SQLPlugin = Depends(get_plugin),
    ctx: RequestContext = Depends(get_request_context),
):
    """
    List users, optionally filtered.

    Args:
        filter: SCIM filter expression
        startIndex: 1-based starting index for pagination
        count: Maximum number of users to return
        attributes: Comma-separated attributes to return

    Returns:
        SCIMListResponse: Paginated list of users
    """
    get_obj = parse_filter(filter, startIndex, count)
    wanted = split_attributes(attributes)

    result = await plugin.get_users(base_entity, get_obj, wanted, ctx)
    resources = [project_attributes(user_resource(user, request), wanted) for user in result.Resources]

    response = page(resources, startIndex, count)
    logger.info(f"Returned {response.itemsPerPage} users (total: {response.totalResults})")
    return scim_response(response.model_dump())


@router.get("/Users/{user_id:path}")
async def get_user(
    user_id: str,
    request: Request,
    base_entity: str = DEFAULT_BASE_ENTITY,
    attributes: Optional[str] = None,
    plugin: SQLPlugin = Depends(get_plugin),
    ctx: RequestContext = Depends(get_request_context),
):
    user = await fetch_user(plugin, base_entity, user_id, ctx)
    if user is None:
        return scim_error(status.HTTP_404_NOT_FOUND, f"User not found: {user_id}")
    return scim_response(project_attributes(user_resource(user, request), split_attributes(attributes)))


@router.post("/Users")
async def create_user(
    user: SCIMUserCreate,
    request: Request,
    base_entity: str = DEFAULT_BASE_ENTITY,
    plugin: SQLPlugin = Depends(get_plugin),
    ctx: RequestContext = Depends(get_request_context),
):
    """
    Create a new user and return it as stored.
    """
    logger.info(f"Creating user: {user.externalId}")
    await plugin.create_user(base_entity, user, ctx)

    created = await fetch_user(plugin, base_entity, user.externalId, ctx)
    if created is None:
        return scim_error(status.HTTP_500_INTERNAL_SERVER_ERROR, f"User not found after create: {user.externalId}")

    logger.info(f"User created successfully: {user.externalId}")
    return scim_response(user_resource(created, request), status.HTTP_201_CREATED)


@router.patch("/Users/{user_id:path}")
async def modify_user(
    user_id: str,
    patch: SCIMPatchRequest,
    request: Request,
    base_entity: str = DEFAULT_BASE_ENTITY,
    plugin: SQLPlugin = Depends(get_plugin),
    ctx: RequestContext = Depends(get_request_context),
):
    """
    Apply SCIM PATCH operations to a user and return the result.
    """
    logger.info(f"Updating user: {user_id}")

    existing = await fetch_user(plugin, base_entity, user_id, ctx)
    if existing is None:
        return scim_error(status.HTTP_404_NOT_FOUND, f"User not found: {user_id}")

    try:
        modification = patch_to_modification(patch)
    except ValidationError as e:
        return scim_error(status.HTTP_400_BAD_REQUEST, f"Invalid patch value: {e}", "invalidValue")

    await plugin.modify_user(base_entity, user_id, modification, ctx)

    updated = await fetch_user(plugin, base_entity, user_id, ctx) or existing
    logger.info(f"User updated successfully: {user_id}")
    return scim_response(user_resource(updated, request))


@router.delete("/Users/{user_id:path}")
async def delete_user(
    user_id: str,
    base_entity: str = DEFAULT_BASE_ENTITY,
    plugin: SQLPlugin = Depends(get_plugin),
    ctx: RequestContext = Depends(get_request_context),
):
    logger.info(f"Deleting user: {user_id}")
    await plugin.delete_user(base_entity, user_id, ctx)
    # SCIM DELETE returns 204 No Content
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/Groups")
async def list_groups(
    base_entity: str = DEFAULT_BASE_ENTITY,
    filter: Optional[str] = None,
    startIndex: int = Query(1, ge=1),
    count: Optional[int] = Query(None, ge=0),
    attributes: Optional[str] = None,
    plugin: SQLPlugin = Depends(get_plugin),
    ctx: RequestContext = Depends(get_request_context),
):
    get_obj = parse_filter(filter, startIndex, count)
    wanted = split_attributes(attributes)

    result = await plugin.get_groups(base_entity, get_obj, wanted, ctx)
    resources = [
        project_attributes({"schemas": [SCIM_GROUP_SCHEMA], **group.model_dump(exclude_none=True)}, wanted)
        for group in result.Resources
    ]
    return scim_response(page(resources, startIndex, count).model_dump())


@router.post("/Groups")
async def create_group(
    group: SCIMGroupCreate,
    base_entity: str = DEFAULT_BASE_ENTITY,
    plugin: SQLPlugin = Depends(get_plugin),
    ctx: RequestContext = Depends(get_request_context),
):
    logger.info(f"Creating group: {group.externalId}")
    await plugin.create_group(base_entity, group, ctx)

    resource = {
        "schemas": [SCIM_GROUP_SCHEMA],
        "id": group.externalId,
        "displayName": group.displayName,
        "members": [],
    }
    return scim_response(resource, status.HTTP_201_CREATED)


@router.patch("/Groups/{group_id}")
async def modify_group(
    group_id: str,
    patch: SCIMPatchRequest,
    base_entity: str = DEFAULT_BASE_ENTITY,
    plugin: SQLPlugin = Depends(get_plugin),
    ctx: RequestContext = Depends(get_request_context),
):
    await plugin.modify_group(base_entity, group_id, patch, ctx)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/Groups/{group_id}")
async def delete_group(
    group_id: str,
    base_entity: str = DEFAULT_BASE_ENTITY,
    plugin: SQLPlugin = Depends(get_plugin),
    ctx: RequestContext = Depends(get_request_context),
):
    await plugin.delete_group(base_entity, group_id, ctx)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def plugin_error_handler(request: Request, exc: PluginError):
    """Convert plugin errors to SCIM error format."""
    logger.error(f"{exc} ({request.method} {request.url.path})")
    return scim_error(exc.status, str(exc), exc.scim_type)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Convert HTTPExceptions to SCIM error format."""
    response = scim_error(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert request validation failures to SCIM invalidSyntax errors."""
    return scim_error(status.HTTP_400_BAD_REQUEST, f"Invalid request: {exc.errors()}", "invalidSyntax")


async def general_exception_handler(request: Request, exc: Exception):
    """Convert unhandled exceptions to SCIM error format."""
    logger.error(f"Unhandled exception: {exc}")
    return scim_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(settings: Optional[SQLBridgeSettings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Resolved settings; loaded from the environment when omitted

    Returns:
        FastAPI: Application with the plugin on ``app.state.plugin``
    """
    if settings is None:
        settings = load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(
        title="SCIM SQL Bridge",
        description="SCIM 2.0 provisioning of users into a SQL user table",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.plugin = SQLPlugin(settings.connection, plugin_name=settings.plugin_name)

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.

        Returns:
            dict: Health status; no database connection is attempted
        """
        return JSONResponse(
            content={
                "status": "healthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "plugin": settings.plugin_name,
                "auth_pass_through": settings.auth_pass_through,
                "version": VERSION,
            }
        )

    app.include_router(router, prefix="/scim/v2")
    app.include_router(router, prefix="/{base_entity}/scim/v2")

    app.add_exception_handler(PluginError, plugin_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info(
        f"{settings.plugin_name} ready (driver={settings.connection.driver}, "
        f"pass-through={settings.auth_pass_through})"
    )
    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("scim_sql_bridge.main:create_app", factory=True, host="0.0.0.0", port=8080)
