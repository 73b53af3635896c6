"""Request building: parameter resolution, default parameters and entities."""

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple, Union

from .stash import stringify
from .version import Version

if TYPE_CHECKING:
    from .stash import Stash

JSON_CONTENT_TYPE = "application/json"
NDJSON_CONTENT_TYPE = "application/x-ndjson"

# A version, or a callable looked up only when a rule needs the version
VersionSource = Union[Version, Callable[[], Optional[Version]], None]


@dataclass
class Entity:
    """A serialized request payload."""

    content: str
    content_type: str = JSON_CONTENT_TYPE

    def encode(self) -> bytes:
        return self.content.encode("utf-8")


@dataclass
class DefaultParamExclusion:
    """Skip a default parameter for some APIs.

    Attributes:
        api_suffix: Applies to API names ending with this suffix
        before_version: Only applies to services older than this version.
            None means every version.
    """

    api_suffix: str
    before_version: Optional[str] = None

    def applies(self, api_name: str, version: VersionSource) -> bool:
        if not api_name.endswith(self.api_suffix):
            return False
        if self.before_version is None:
            return True
        if callable(version):
            version = version()
        # Without a known version the exclusion cannot be ruled out
        if version is None:
            return True
        return version.before(self.before_version)


@dataclass
class DefaultParam:
    """A parameter added to every request that does not set it explicitly."""

    name: str
    value: str
    exclude: List[DefaultParamExclusion] = field(default_factory=list)

    def applies(self, api_name: str, version: VersionSource) -> bool:
        return not any(rule.applies(api_name, version) for rule in self.exclude)


# Ask for error traces by default, except for put_settings on versions
# where the parameter is rejected
DEFAULT_PARAMS: List[DefaultParam] = [
    DefaultParam(
        name="error_trace",
        value="true",
        exclude=[DefaultParamExclusion(api_suffix="put_settings", before_version="5.2.0")],
    ),
]


def body_as_string(body: Any) -> str:
    """Serialize one body to a compact JSON document."""
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


class RequestBuilder:
    """Turns raw step input into resolved parameters and a request entity.

    Attributes:
        stash: Stash used to resolve references
        default_params: Rules for parameters injected when absent
    """

    def __init__(
        self,
        stash: "Stash",
        default_params: Optional[List[DefaultParam]] = None,
    ) -> None:
        self.stash = stash
        self.default_params = list(DEFAULT_PARAMS if default_params is None else default_params)

    def build(
        self,
        api_name: str,
        params: Optional[Dict[str, Any]],
        bodies: Optional[List[Any]],
        version: VersionSource = None,
    ) -> Tuple[Dict[str, str], Optional[Entity]]:
        """Resolve parameters and serialize bodies.

        Args:
            api_name: Name of the API being called
            params: Raw parameters, never modified
            bodies: Zero or more request bodies
            version: Version of the service, or a callable returning it. A
                callable is only invoked when a version bounded rule matches
                the API name.

        Returns:
            Tuple of (resolved_params, entity). Entity is None without bodies.

        Raises:
            UndefinedVariableError: If a parameter or body refers to an unknown stash key
        """
        request_params = self.resolve_params(api_name, params, version)
        entity = self.create_entity(bodies or [])
        return request_params, entity

    def resolve_params(
        self,
        api_name: str,
        params: Optional[Dict[str, Any]],
        version: VersionSource = None,
    ) -> Dict[str, str]:
        """Copy params, add defaults and replace stashed values."""
        request_params: Dict[str, Any] = dict(params or {})

        for default in self.default_params:
            if default.name not in request_params and default.applies(api_name, version):
                request_params[default.name] = default.value

        return {
            name: stringify(self.stash.resolve(value))
            for name, value in request_params.items()
        }

    def create_entity(self, bodies: List[Any]) -> Optional[Entity]:
        """Serialize bodies into a single entity.

        One body becomes one JSON document. Several bodies become one
        document per line, as used by bulk style APIs.
        """
        if not bodies:
            return None

        if len(bodies) == 1:
            return Entity(body_as_string(self.stash.resolve(bodies[0])))

        lines = [body_as_string(self.stash.resolve(body)) for body in bodies]
        return Entity("\n".join(lines) + "\n", content_type=NDJSON_CONTENT_TYPE)
