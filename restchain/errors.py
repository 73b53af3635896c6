"""Custom exceptions for restchain."""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .response import ApiResponse


class RestChainError(Exception):
    """Base exception for all restchain errors."""

    pass


class UndefinedVariableError(RestChainError):
    """Raised when a reference points to a name that was never stashed.

    Attributes:
        name: The stash key that could not be found
    """

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"stashed value not found for key [{name}]")


class TransportError(RestChainError):
    """Raised when a call did not produce any response (connection refused, timeout).

    Attributes:
        api_name: The API that was being called
        cause: The underlying exception, if any
    """

    def __init__(self, api_name: str, cause: Optional[BaseException] = None):
        self.api_name = api_name
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Call to '{api_name}' failed without a response{detail}")


class RemoteError(RestChainError):
    """Raised when the service answered with an error status.

    The response is kept so that the body of the error can be inspected
    after the call.

    Attributes:
        api_name: The API that was being called
        response: The error response returned by the service
    """

    def __init__(self, api_name: str, response: "ApiResponse"):
        self.api_name = api_name
        self.response = response
        super().__init__(
            f"Call to '{api_name}' returned status {response.status}: {response.body!r}"
        )

    @property
    def status(self) -> int:
        return self.response.status

    @property
    def body(self) -> Any:
        return self.response.body


class NoResponseError(RestChainError):
    """Raised when a path is evaluated before any call has returned a response."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"No response available to evaluate path [{path}]")


class PathNotFoundError(RestChainError):
    """Raised when a path does not exist in the response body.

    Attributes:
        path: The full path that was evaluated
        segment: The segment at which evaluation stopped
    """

    def __init__(self, path: str, segment: Optional[str] = None):
        self.path = path
        self.segment = segment
        at = f" (no value at [{segment}])" if segment is not None else ""
        super().__init__(f"Path [{path}] not found in response body{at}")


class ApiNotFoundError(RestChainError):
    """Raised when the transport has no endpoint registered for an API name."""

    def __init__(self, api_name: str, available: Optional[list] = None):
        self.api_name = api_name
        self.available = available or []
        message = f"Unknown api: {api_name}"
        if self.available:
            message += f". Available: {', '.join(sorted(self.available))}"
        super().__init__(message)


class ConfigError(RestChainError):
    """Raised when a configuration or step file cannot be parsed.

    Attributes:
        file_path: Path of the offending file, if known
    """

    def __init__(self, message: str, file_path: Optional[str] = None):
        self.file_path = file_path
        if file_path:
            message = f"{file_path}: {message}"
        super().__init__(message)


class StepError(RestChainError):
    """Raised when a step fails while running a test case."""

    pass
