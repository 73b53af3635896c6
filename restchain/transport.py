"""Transport layer sending resolved requests to the service under test.

The execution context only depends on the Transport protocol. HttpTransport
is the httpx based implementation used by the command line runner; it maps
API names to HTTP endpoints through an ApiRegistry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple
from urllib.parse import quote

import httpx

from .errors import ApiNotFoundError, RemoteError, TransportError
from .request import Entity
from .response import ApiResponse
from .version import Version

# Placeholders like {index} in endpoint paths
_PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")

# Parameter listing statuses that must not raise RemoteError (e.g. "404,409")
IGNORE_PARAM = "ignore"


class Transport(Protocol):
    """What the execution context needs from a transport."""

    def call_api(
        self,
        api_name: str,
        params: Dict[str, str],
        entity: Optional[Entity],
        headers: Dict[str, str],
    ) -> ApiResponse:
        """Send a request.

        Raises:
            RemoteError: If the service answered with an error status
            TransportError: If no response was received
        """
        ...

    def version(self) -> Version:
        """Version of the service under test."""
        ...


@dataclass
class ApiEndpoint:
    """HTTP method and candidate paths for one API."""

    method: str
    paths: List[str]

    def select_path(self, params: Dict[str, str]) -> Tuple[str, Dict[str, str]]:
        """Pick the path that uses the most of the given parameters.

        Returns:
            Tuple of (filled_path, remaining_params). Remaining params are
            sent as the query string.

        Raises:
            ValueError: If no path can be filled from params
        """
        best: Optional[str] = None
        best_parts: List[str] = []
        for candidate in self.paths:
            parts = _PLACEHOLDER_PATTERN.findall(candidate)
            if all(part in params for part in parts) and (
                best is None or len(parts) > len(best_parts)
            ):
                best = candidate
                best_parts = parts

        if best is None:
            raise ValueError(
                f"No path of {self.paths} can be filled from params {sorted(params)}"
            )

        filled = _PLACEHOLDER_PATTERN.sub(lambda m: _quote_segment(params[m.group(1)]), best)
        remaining = {k: v for k, v in params.items() if k not in best_parts}
        return filled, remaining


def _quote_segment(value: str) -> str:
    # Comma separated lists (index names) stay readable
    return quote(value, safe=",*")


DEFAULT_APIS: Dict[str, ApiEndpoint] = {
    "info": ApiEndpoint("GET", ["/"]),
    "index": ApiEndpoint("PUT", ["/{index}/{type}/{id}", "/{index}/_doc/{id}", "/{index}/_doc"]),
    "create": ApiEndpoint("PUT", ["/{index}/_create/{id}"]),
    "get": ApiEndpoint("GET", ["/{index}/{type}/{id}", "/{index}/_doc/{id}"]),
    "exists": ApiEndpoint("HEAD", ["/{index}/_doc/{id}"]),
    "delete": ApiEndpoint("DELETE", ["/{index}/{type}/{id}", "/{index}/_doc/{id}"]),
    "update": ApiEndpoint("POST", ["/{index}/_update/{id}"]),
    "search": ApiEndpoint("POST", ["/_search", "/{index}/_search"]),
    "count": ApiEndpoint("POST", ["/_count", "/{index}/_count"]),
    "bulk": ApiEndpoint("POST", ["/_bulk", "/{index}/_bulk"]),
    "indices.create": ApiEndpoint("PUT", ["/{index}"]),
    "indices.delete": ApiEndpoint("DELETE", ["/{index}"]),
    "indices.exists": ApiEndpoint("HEAD", ["/{index}"]),
    "indices.refresh": ApiEndpoint("POST", ["/_refresh", "/{index}/_refresh"]),
    "indices.get_mapping": ApiEndpoint("GET", ["/_mapping", "/{index}/_mapping"]),
    "indices.put_mapping": ApiEndpoint("PUT", ["/{index}/_mapping"]),
    "cluster.health": ApiEndpoint("GET", ["/_cluster/health", "/_cluster/health/{index}"]),
    "cluster.get_settings": ApiEndpoint("GET", ["/_cluster/settings"]),
    "cluster.put_settings": ApiEndpoint("PUT", ["/_cluster/settings"]),
}


class ApiRegistry:
    """Maps API names to endpoints."""

    def __init__(self, apis: Optional[Dict[str, ApiEndpoint]] = None) -> None:
        self._apis: Dict[str, ApiEndpoint] = dict(DEFAULT_APIS)
        if apis:
            self._apis.update(apis)

    def register(self, name: str, endpoint: ApiEndpoint) -> None:
        self._apis[name] = endpoint

    def get(self, name: str) -> ApiEndpoint:
        """Get an endpoint by API name.

        Raises:
            ApiNotFoundError: If the API is not registered
        """
        if name not in self._apis:
            raise ApiNotFoundError(name, list(self._apis))
        return self._apis[name]

    def available(self) -> List[str]:
        return list(self._apis.keys())


@dataclass
class TransportConfig:
    """Connection settings for HttpTransport."""

    host: str = "http://localhost:9200"
    timeout: float = 30.0
    version: Optional[str] = None  # Skip discovery when set
    headers: Dict[str, str] = field(default_factory=dict)


class HttpTransport:
    """Sends API calls over HTTP with httpx.

    Usage:
        with HttpTransport(TransportConfig(host="http://localhost:9200")) as transport:
            context = ExecutionContext(transport)
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        registry: Optional[ApiRegistry] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.config = config or TransportConfig()
        self.registry = registry or ApiRegistry()
        self._client = client or httpx.Client(
            base_url=self.config.host,
            timeout=self.config.timeout,
            headers=self.config.headers,
        )
        self._version: Optional[Version] = (
            Version.parse(self.config.version) if self.config.version else None
        )

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def version(self) -> Version:
        """Version of the service, discovered from the root endpoint once."""
        if self._version is None:
            response = self.call_api("info", {}, None, {})
            try:
                number = response.body["version"]["number"]
            except (KeyError, TypeError):
                raise TransportError(
                    "info", ValueError(f"No version number in {response.body!r}")
                ) from None
            self._version = Version.parse(number)
        return self._version

    def call_api(
        self,
        api_name: str,
        params: Dict[str, str],
        entity: Optional[Entity],
        headers: Dict[str, str],
    ) -> ApiResponse:
        """Send one API call and decode the response."""
        endpoint = self.registry.get(api_name)

        params = dict(params)
        ignore = _parse_ignore(params.pop(IGNORE_PARAM, None))

        try:
            path, query = endpoint.select_path(params)
        except ValueError as e:
            raise TransportError(api_name, e) from e

        request_headers = dict(headers)
        content: Optional[bytes] = None
        if entity is not None:
            content = entity.encode()
            request_headers.setdefault("Content-Type", entity.content_type)

        try:
            http_response = self._client.request(
                endpoint.method,
                path,
                params=query,
                content=content,
                headers=request_headers,
            )
        except httpx.TransportError as e:
            raise TransportError(api_name, e) from e

        response = ApiResponse(
            status=http_response.status_code,
            body=_decode_body(http_response),
            headers=dict(http_response.headers),
        )
        if not response.success and response.status not in ignore:
            raise RemoteError(api_name, response)
        return response


def _parse_ignore(value: Optional[str]) -> List[int]:
    if not value:
        return []
    return [int(part) for part in value.split(",") if part.strip()]


def _decode_body(http_response: httpx.Response):
    """JSON bodies become structured values, anything else stays text.

    A body labelled as JSON that does not parse is kept as text.
    """
    if not http_response.content:
        return ""
    content_type = http_response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return http_response.json()
        except ValueError:
            return http_response.text
    return http_response.text
