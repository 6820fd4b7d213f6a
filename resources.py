"""Read-only MCP resources backed by the Coolify API."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.types import Resource, ResourceTemplate
from pydantic import AnyUrl

from coolify_client import CoolifyAPIError, CoolifyClient

logger = logging.getLogger(__name__)

SCHEME = "coolify://"
STATUS_URI = "coolify://status"
MIME_TYPE = "application/json"

# URI kind -> (API collection, human name)
ENTITY_KINDS = {
    "applications": ("/applications", "Application"),
    "databases": ("/databases", "Database"),
    "services": ("/services", "Service"),
    "servers": ("/servers", "Server"),
    "projects": ("/projects", "Project"),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _or_default(call, default: Any) -> Any:
    try:
        return await call
    except CoolifyAPIError as e:
        logger.debug("Optional lookup failed: %s", e.message)
        return default


async def read_status(client: CoolifyClient) -> dict[str, Any]:
    """Health and version of the instance, or the reason it is unreachable."""
    try:
        await client.health_check()
    except CoolifyAPIError as e:
        return {"timestamp": _now(), "api_status": "error", "error": e.message}

    version = await _or_default(client.get("/version"), "unknown")
    return {"timestamp": _now(), "api_status": "healthy", "version": version}


async def read_entity(client: CoolifyClient, kind: str, uuid: str) -> dict[str, Any]:
    collection, label = ENTITY_KINDS[kind]
    path = f"{collection}/{uuid}"
    try:
        if kind != "applications":
            return {"data": await client.get(path)}
        details, deployments, envs = await asyncio.gather(
            client.get(path),
            _or_default(client.get(f"{path}/deployments"), []),
            _or_default(client.get(f"{path}/envs"), []),
        )
    except CoolifyAPIError as e:
        return {"error": f"Failed to fetch {label.lower()} data", "uuid": uuid, "message": e.message}

    # Only variable names are exposed, never their values.
    keys = [env.get("key") for env in envs if isinstance(env, dict)] if isinstance(envs, list) else []
    return {
        "data": details,
        "deployment_history": deployments,
        "environment_variables": {"count": len(keys), "keys": keys},
    }


def parse_uri(uri: str) -> tuple[str, str]:
    """Split ``coolify://<kind>/<uuid>`` into its kind and uuid.

    Raises:
        ValueError: for URIs that do not name a known entity.
    """
    if not uri.startswith(SCHEME):
        raise ValueError(f"Unknown resource: {uri}")
    kind, _, uuid = uri[len(SCHEME):].partition("/")
    if kind not in ENTITY_KINDS or not uuid or "/" in uuid:
        raise ValueError(f"Unknown resource: {uri}")
    return kind, uuid


async def read_resource_text(client: CoolifyClient, uri: str) -> str:
    if uri == STATUS_URI:
        payload = await read_status(client)
    else:
        kind, uuid = parse_uri(uri)
        payload = await read_entity(client, kind, uuid)
    return json.dumps(payload, indent=2)


def list_static_resources() -> list[Resource]:
    return [
        Resource(
            uri=AnyUrl(STATUS_URI),
            name="status",
            title="System Health Status",
            description="Health and version of the Coolify instance.",
            mimeType=MIME_TYPE,
        )
    ]


def list_resource_templates() -> list[ResourceTemplate]:
    return [
        ResourceTemplate(
            uriTemplate=f"{SCHEME}{kind}/{{uuid}}",
            name=kind,
            title=f"{label} Details",
            description=f"Current configuration and state of a {label.lower()}.",
            mimeType=MIME_TYPE,
        )
        for kind, (_, label) in ENTITY_KINDS.items()
    ]


def register_resources(server: Server, client: CoolifyClient) -> None:
    """Attach the resource handlers to ``server``."""

    @server.list_resources()
    async def list_resources() -> list[Resource]:
        return list_static_resources()

    @server.list_resource_templates()
    async def list_templates() -> list[ResourceTemplate]:
        return list_resource_templates()

    @server.read_resource()
    async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
        text = await read_resource_text(client, str(uri))
        return [ReadResourceContents(content=text, mime_type=MIME_TYPE)]
