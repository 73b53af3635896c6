"""Execution context holding the stash and the last response across calls."""

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .display import Display
from .errors import NoResponseError, RemoteError, UndefinedVariableError
from .request import DefaultParam, RequestBuilder
from .response import ApiResponse
from .stash import Stash
from .version import Version

if TYPE_CHECKING:
    from .transport import Transport

# Stash key that always holds the body of the last response
BODY_KEY = "body"


@dataclass
class _Outcome:
    """Result of one dispatch: a response, an error, or both for remote errors."""

    response: Optional[ApiResponse] = None
    error: Optional[Exception] = None


class ExecutionContext:
    """Holds state while the calls of one test case run.

    Caches the last response (including error responses) and lets values
    be stashed so that later requests can refer to them. The body of the
    last response is always available as ``$body``.
    """

    def __init__(
        self,
        transport: "Transport",
        display: Optional[Display] = None,
        default_params: Optional[List[DefaultParam]] = None,
    ) -> None:
        self.transport = transport
        self.display = display or Display()
        self._stash = Stash()
        self._builder = RequestBuilder(self._stash, default_params)
        self._response: Optional[ApiResponse] = None

    @property
    def stash(self) -> Stash:
        return self._stash

    @property
    def last_response(self) -> Optional[ApiResponse]:
        return self._response

    def call_api(
        self,
        api_name: str,
        params: Optional[Dict[str, Any]] = None,
        bodies: Optional[List[Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> ApiResponse:
        """Call an API with the given parameters and bodies.

        Stashed values are substituted before sending. The response (or the
        error response) is saved as the last response and its body is
        stashed under ``body``, whatever the outcome.

        Raises:
            UndefinedVariableError: If the request refers to an unknown stash key
            RemoteError: If the service answered with an error status, either to
                the call or to the version lookup it needed
            TransportError: If no response was received
        """
        start = time.time()
        outcome = self._dispatch(api_name, params, bodies, headers or {})
        try:
            self.display.print_call_result(
                api_name, outcome.response, time.time() - start, outcome.error
            )
            if outcome.error is not None:
                raise outcome.error
            return outcome.response
        finally:
            self._response = outcome.response
            body = self._response.body if self._response is not None else None
            self._stash.set(BODY_KEY, body)

    def _dispatch(
        self,
        api_name: str,
        params: Optional[Dict[str, Any]],
        bodies: Optional[List[Any]],
        headers: Dict[str, str],
    ) -> _Outcome:
        try:
            # The service version is only fetched when a default parameter
            # rule bounded by version matches this API
            request_params, entity = self._builder.build(
                api_name, params, bodies, self.es_version
            )
            self.display.print_call(api_name, request_params, entity is not None)
            response = self.transport.call_api(api_name, request_params, entity, headers)
        except UndefinedVariableError:
            raise
        except RemoteError as e:
            return _Outcome(response=e.response, error=e)
        except Exception as e:
            # No response at all: connection failures and anything unexpected
            return _Outcome(error=e)
        return _Outcome(response=response)

    def response(self, path: str) -> Any:
        """Extract a value from the last response.

        Raises:
            NoResponseError: If no call has produced a response yet
            PathNotFoundError: If the path does not exist in the body
        """
        if self._response is None:
            raise NoResponseError(path)
        return self._response.evaluate(path, self._stash)

    def clear(self) -> None:
        """Forget the last response and every stashed value."""
        self.display.print_reset()
        self._response = None
        self._stash.clear()

    def es_version(self) -> Version:
        """Version of the service under test."""
        return self.transport.version()
