"""Step runner executing YAML test cases against one execution context.

A test file holds one or more YAML documents. Each document maps test case
names to a list of steps; the reserved names ``setup`` and ``teardown`` hold
steps run around every test case of the file.

```yaml
setup:
  - do:
      indices.create:
        index: test
"Index then get":
  - do:
      index:
        index: test
        body: {title: hello}
  - set: {_id: doc_id}
  - do:
      get:
        index: test
        id: $doc_id
  - do:
      catch: missing
      get:
        index: test
        id: does-not-exist
```
"""

import json
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .context import ExecutionContext
from .display import Display
from .errors import ConfigError, RemoteError, RestChainError, StepError

SETUP = "setup"
TEARDOWN = "teardown"

# Keys of a do step that are not the API name
_DO_OPTIONS = ("catch", "headers")

# Named statuses accepted by catch
CATCH_STATUSES: Dict[str, int] = {
    "bad_request": 400,
    "unauthorized": 401,
    "forbidden": 403,
    "missing": 404,
    "request_timeout": 408,
    "conflict": 409,
    "unavailable": 503,
}
CATCH_ANY = "any"


@dataclass
class TestFile:
    """Parsed contents of a test file."""

    __test__ = False

    path: Path
    setup: List[Dict[str, Any]] = field(default_factory=list)
    teardown: List[Dict[str, Any]] = field(default_factory=list)
    cases: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)


@dataclass
class TestCaseResult:
    """Outcome of one test case."""

    __test__ = False

    name: str
    success: bool
    duration: float = 0.0
    error: Optional[str] = None


def load_test_file(path: Path) -> TestFile:
    """Load a YAML test file.

    Raises:
        ConfigError: If the file cannot be read or has an invalid layout
    """
    try:
        with open(path, "r") as f:
            documents = [doc for doc in yaml.safe_load_all(f) if doc is not None]
    except OSError as e:
        raise ConfigError(f"Cannot read test file: {e}", str(path)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}", str(path)) from e

    test_file = TestFile(path=path)
    for document in documents:
        if not isinstance(document, dict):
            raise ConfigError("Each document must be a YAML dictionary", str(path))
        for name, steps in document.items():
            if not isinstance(steps, list):
                raise ConfigError(f"'{name}' must be a list of steps", str(path))
            if name == SETUP:
                test_file.setup.extend(steps)
            elif name == TEARDOWN:
                test_file.teardown.extend(steps)
            elif name in test_file.cases:
                raise ConfigError(f"Duplicate test case '{name}'", str(path))
            else:
                test_file.cases[str(name)] = steps
    return test_file


def _as_bodies(body: Any) -> List[Any]:
    """Normalize a step body to a list of documents.

    A list is a bulk style body. A string holds one JSON document per line.
    """
    if body is None:
        return []
    if isinstance(body, list):
        return body
    if isinstance(body, str):
        return [json.loads(line) for line in body.splitlines() if line.strip()]
    return [body]


def _catch_matches(catch: Any, error: RemoteError) -> bool:
    catch_text = str(catch)
    if catch_text == CATCH_ANY:
        return True
    if catch_text in CATCH_STATUSES:
        return error.status == CATCH_STATUSES[catch_text]
    if catch_text.isdigit():
        return error.status == int(catch_text)
    if len(catch_text) > 1 and catch_text.startswith("/") and catch_text.endswith("/"):
        body_text = error.body if isinstance(error.body, str) else json.dumps(error.body)
        return re.search(catch_text[1:-1], body_text) is not None
    raise StepError(f"Unknown catch value: {catch_text}")


class StepRunner:
    """Runs test cases step by step.

    Each test case starts from a cleared context, so values stashed in one
    test case are never visible in another.
    """

    def __init__(self, context: ExecutionContext, display: Optional[Display] = None) -> None:
        self.context = context
        self._display = display or context.display

    def run_step(self, step: Dict[str, Any]) -> None:
        """Execute a single step.

        Raises:
            StepError: If the step is malformed or fails
        """
        if not isinstance(step, dict) or len(step) != 1:
            raise StepError(f"A step must have exactly one kind (do, set): {step!r}")

        kind, options = next(iter(step.items()))
        if kind == "do":
            self._run_do(options)
        elif kind == "set":
            self._run_set(options)
        else:
            raise StepError(f"Unknown step kind: {kind}")

    def _run_do(self, options: Dict[str, Any]) -> None:
        if not isinstance(options, dict):
            raise StepError(f"'do' expects a dictionary, got {options!r}")

        api_names = [key for key in options if key not in _DO_OPTIONS]
        if len(api_names) != 1:
            raise StepError(f"'do' must name exactly one api, got {api_names}")
        api_name = api_names[0]

        arguments = options[api_name] or {}
        if not isinstance(arguments, dict):
            raise StepError(f"Arguments of '{api_name}' must be a dictionary, got {arguments!r}")
        arguments = dict(arguments)
        try:
            bodies = _as_bodies(arguments.pop("body", None))
        except json.JSONDecodeError as e:
            raise StepError(f"Invalid JSON body for '{api_name}': {e}") from e
        headers = {str(k): str(v) for k, v in (options.get("headers") or {}).items()}
        catch = options.get("catch")

        try:
            self.context.call_api(api_name, arguments, bodies, headers)
        except RemoteError as e:
            if catch is None:
                raise StepError(str(e)) from e
            if not _catch_matches(catch, e):
                raise StepError(
                    f"Expected [{catch}] from '{api_name}' but got status {e.status}"
                ) from e
            self._display.print_caught(api_name, e.status)
            return
        except RestChainError as e:
            raise StepError(f"'{api_name}' failed: {e}") from e

        if catch is not None:
            raise StepError(f"Expected [{catch}] from '{api_name}' but the call succeeded")

    def _run_set(self, options: Dict[str, Any]) -> None:
        if not isinstance(options, dict) or not options:
            raise StepError(f"'set' expects a dictionary of path: name, got {options!r}")
        for path, name in options.items():
            try:
                value = self.context.response(str(path))
            except RestChainError as e:
                raise StepError(f"Cannot set '{name}': {e}") from e
            try:
                self.context.stash.set(str(name), value)
            except ValueError as e:
                raise StepError(str(e)) from e

    def run_steps(self, steps: List[Dict[str, Any]]) -> None:
        for step in steps:
            self.run_step(step)

    def run_test_case(
        self,
        name: str,
        steps: List[Dict[str, Any]],
        setup: Optional[List[Dict[str, Any]]] = None,
        teardown: Optional[List[Dict[str, Any]]] = None,
    ) -> TestCaseResult:
        """Run one test case on a freshly cleared context."""
        self._display.print_test_start(name)
        start = time.time()
        error: Optional[str] = None

        self.context.clear()
        try:
            self.run_steps(setup or [])
            self.run_steps(steps)
        except StepError as e:
            error = str(e)
        finally:
            try:
                self.run_steps(teardown or [])
            except StepError as e:
                error = error or f"teardown: {e}"

        result = TestCaseResult(
            name=name,
            success=error is None,
            duration=time.time() - start,
            error=error,
        )
        self._display.print_test_result(name, result.success, result.duration, error)
        return result

    def run_file(self, path: Path) -> List[TestCaseResult]:
        """Run every test case of a file."""
        test_file = load_test_file(path)
        return [
            self.run_test_case(
                f"{path.name} / {name}",
                steps,
                setup=test_file.setup,
                teardown=test_file.teardown,
            )
            for name, steps in test_file.cases.items()
        ]
