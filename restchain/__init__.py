"""restchain: declarative API call sequences with stashed values."""

from .config import RunnerConfig, load_config, parse_config
from .context import BODY_KEY, ExecutionContext
from .display import Display
from .errors import (
    ApiNotFoundError,
    ConfigError,
    NoResponseError,
    PathNotFoundError,
    RemoteError,
    RestChainError,
    StepError,
    TransportError,
    UndefinedVariableError,
)
from .request import DEFAULT_PARAMS, DefaultParam, DefaultParamExclusion, Entity, RequestBuilder
from .response import ApiResponse
from .runner import StepRunner, TestCaseResult, load_test_file
from .stash import Reference, ReferenceKind, Stash, parse_reference
from .transport import ApiEndpoint, ApiRegistry, HttpTransport, Transport, TransportConfig
from .version import Version

__all__ = [
    # Config
    "RunnerConfig",
    "load_config",
    "parse_config",
    # Context
    "BODY_KEY",
    "ExecutionContext",
    # Display
    "Display",
    # Errors
    "ApiNotFoundError",
    "ConfigError",
    "NoResponseError",
    "PathNotFoundError",
    "RemoteError",
    "RestChainError",
    "StepError",
    "TransportError",
    "UndefinedVariableError",
    # Request
    "DEFAULT_PARAMS",
    "DefaultParam",
    "DefaultParamExclusion",
    "Entity",
    "RequestBuilder",
    # Response
    "ApiResponse",
    # Runner
    "StepRunner",
    "TestCaseResult",
    "load_test_file",
    # Stash
    "Reference",
    "ReferenceKind",
    "Stash",
    "parse_reference",
    # Transport
    "ApiEndpoint",
    "ApiRegistry",
    "HttpTransport",
    "Transport",
    "TransportConfig",
    # Version
    "Version",
]
