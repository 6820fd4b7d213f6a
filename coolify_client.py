"""Coolify API client - bearer-authenticated httpx calls with normalized errors."""

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0
USER_AGENT = "coolify-mcp"

# (type value, image keyword), in routing precedence order
DATABASE_ENGINES = (
    ("postgresql", "postgres"),
    ("mysql", "mysql"),
    ("mongodb", "mongo"),
    ("redis", "redis"),
    ("mariadb", "mariadb"),
    ("clickhouse", "clickhouse"),
    ("dragonfly", "dragonfly"),
    ("keydb", "keydb"),
)


class ConfigurationError(Exception):
    """Raised when the server cannot start because credentials are missing."""


class CoolifyAPIError(Exception):
    """Any failed call to the Coolify API, normalized to one shape."""

    def __init__(self, message: str, status_code: int | None = None, raw_body: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.raw_body = raw_body


@dataclass(frozen=True)
class Credentials:
    base_url: str
    api_token: str

    def __post_init__(self) -> None:
        missing = []
        if not self.base_url:
            missing.append("COOLIFY_BASE_URL")
        if not self.api_token:
            missing.append("COOLIFY_API_TOKEN")
        if missing:
            raise ConfigurationError(f"{' and '.join(missing)} must be set in environment")

        try:
            url = httpx.URL(self.base_url)
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"COOLIFY_BASE_URL is not a valid URL: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ConfigurationError(
                f"COOLIFY_BASE_URL must be an http(s) URL, got '{self.base_url}'"
            )


def load_credentials(environ: Mapping[str, str] | None = None) -> Credentials:
    """Read credentials from the process environment (or a given mapping)."""
    environ = os.environ if environ is None else environ
    return Credentials(
        base_url=environ.get("COOLIFY_BASE_URL", "").strip(),
        api_token=environ.get("COOLIFY_API_TOKEN", "").strip(),
    )


def database_endpoint(data: Mapping[str, Any]) -> str:
    """Pick the engine-specific creation path for a database payload.

    An explicit ``type`` wins; otherwise the ``image`` string is searched for
    each engine keyword in order. Payloads matching neither go to the
    generic ``/databases`` path.
    """
    engine_type = str(data.get("type") or "").lower()
    for engine, _ in DATABASE_ENGINES:
        if engine_type == engine:
            return f"/databases/{engine}"

    image = str(data.get("image") or "").lower()
    for engine, keyword in DATABASE_ENGINES:
        if keyword in image:
            return f"/databases/{engine}"

    return "/databases"


def _error_message(response: httpx.Response, body: Any) -> str:
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Request failed with status code {response.status_code}"


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


class CoolifyClient:
    """Single point of outbound HTTP communication with a Coolify instance."""

    def __init__(self, credentials: Credentials, timeout: float = REQUEST_TIMEOUT):
        self.base_url = credentials.base_url.rstrip("/")
        self.timeout = timeout
        self._api_token = credentials.api_token

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        """Make one request to the Coolify API and return the decoded JSON body.

        Raises:
            CoolifyAPIError: on connection errors, timeouts, non-2xx responses
                and undecodable success bodies.
        """
        url = f"{self.base_url}{path}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        logger.debug("%s %s", method, path)

        async with httpx.AsyncClient() as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self.headers,
                    params=params or None,
                    json=json_body,
                    timeout=self.timeout,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                body = _decode_body(e.response)
                message = _error_message(e.response, body)
                logger.warning("%s %s failed with %s: %s", method, path, e.response.status_code, message)
                raise CoolifyAPIError(message, e.response.status_code, body) from e
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                message = str(e) or type(e).__name__
                logger.warning("%s %s failed: %s", method, path, message)
                raise CoolifyAPIError(message) from e

        if not response.content:
            return None
        # Some endpoints (e.g. /version) answer with plain text.
        return _decode_body(response)

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, data: Any = None) -> Any:
        return await self.request("POST", path, json_body=data)

    async def patch(self, path: str, data: Any = None) -> Any:
        return await self.request("PATCH", path, json_body=data)

    async def put(self, path: str, data: Any = None) -> Any:
        return await self.request("PUT", path, json_body=data)

    async def delete(self, path: str, data: Any = None) -> Any:
        return await self.request("DELETE", path, json_body=data)

    async def create_database(self, data: dict[str, Any]) -> Any:
        """Create a database on the engine-specific endpoint chosen from ``data``."""
        return await self.post(database_endpoint(data), data)

    async def health_check(self) -> Any:
        # Coolify has no dedicated health endpoint; listing teams stands in for one.
        return await self.get("/teams")

    async def is_healthy(self) -> bool:
        try:
            await self.health_check()
        except CoolifyAPIError as e:
            logger.warning("Coolify health check failed: %s", e.message)
            return False
        return True
