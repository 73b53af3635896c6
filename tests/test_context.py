"""Comprehensive unit tests for ExecutionContext.

This module tests call dispatch, response caching, the always-on stashing
of the last response body and path evaluation against the last response.
"""

import json
from unittest.mock import MagicMock

import pytest

from restchain.context import BODY_KEY, ExecutionContext
from restchain.errors import (
    NoResponseError,
    PathNotFoundError,
    RemoteError,
    TransportError,
    UndefinedVariableError,
)
from restchain.request import DefaultParam
from restchain.response import ApiResponse

from conftest import FakeTransport


class TestCallApi:
    """Tests for successful calls."""

    def test_returns_and_caches_response(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        response = ApiResponse(201, {"_id": "abc", "result": "created"})
        transport.queue(response)

        result = context.call_api("index", {"index": "test"}, [{"title": "x"}])

        assert result is response
        assert context.last_response is response

    def test_body_is_stashed(self, context: ExecutionContext, transport: FakeTransport) -> None:
        transport.queue(ApiResponse(200, {"acknowledged": True}))
        context.call_api("indices.create", {"index": "test"})
        assert context.stash.get("$body") == {"acknowledged": True}

    def test_params_resolved_from_stash(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        context.stash.set("doc_id", "abc")
        context.call_api("get", {"index": "test", "id": "$doc_id"})
        assert transport.calls[0]["params"]["id"] == "abc"

    def test_body_resolved_from_stash(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        context.stash.set("x", "42")
        context.call_api("index", {"index": "test"}, [{"a": {"b": "$x"}}])
        entity = transport.calls[0]["entity"]
        assert json.loads(entity.content) == {"a": {"b": "42"}}

    def test_caller_params_not_mutated(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        params = {"index": "test"}
        context.call_api("search", params)
        assert params == {"index": "test"}
        assert transport.calls[0]["params"]["error_trace"] == "true"

    def test_no_bodies_means_no_entity(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        context.call_api("indices.refresh")
        assert transport.calls[0]["entity"] is None
        assert transport.calls[0]["headers"] == {}

    def test_headers_passed_through(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        context.call_api("info", headers={"Authorization": "Basic xyz"})
        assert transport.calls[0]["headers"] == {"Authorization": "Basic xyz"}

    def test_response_body_feeds_next_call(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        transport.queue(ApiResponse(201, {"_id": "generated-1"}), ApiResponse(200, {}))

        context.call_api("index", {"index": "test"}, [{"title": "x"}])
        context.stash.set("id", context.response("_id"))
        context.call_api("update", {"index": "test", "id": "$id"}, [{"doc": {"v": "$id"}}])

        second = transport.calls[1]
        assert second["params"]["id"] == "generated-1"
        assert json.loads(second["entity"].content) == {"doc": {"v": "generated-1"}}

    def test_undefined_reference_fails_before_dispatch(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        transport.queue(ApiResponse(200, {"first": 1}))
        context.call_api("info")

        with pytest.raises(UndefinedVariableError):
            context.call_api("get", {"id": "$nope"})

        assert len(transport.calls) == 1
        assert context.response("first") == 1

    def test_display_notified(
        self, context: ExecutionContext, mock_display: MagicMock
    ) -> None:
        context.call_api("info")
        mock_display.print_call.assert_called_once()
        mock_display.print_call_result.assert_called_once()

    def test_custom_default_params(self, transport: FakeTransport, mock_display: MagicMock) -> None:
        ctx = ExecutionContext(transport, mock_display, [DefaultParam("pretty", "true")])
        ctx.call_api("info")
        assert transport.calls[0]["params"] == {"pretty": "true"}


class TestFailedCalls:
    """Tests for remote errors and transport failures."""

    def test_remote_error_is_reraised_and_captured(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        error_body = {"error": {"type": "index_not_found_exception"}, "status": 404}
        transport.queue(ApiResponse(404, error_body))

        with pytest.raises(RemoteError) as exc_info:
            context.call_api("get", {"index": "missing", "id": "1"})

        assert exc_info.value.status == 404
        assert context.last_response is exc_info.value.response
        assert context.stash.get("$body") == error_body
        assert context.response("error.type") == "index_not_found_exception"

    def test_remote_error_replaces_previous_response(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        transport.queue(ApiResponse(200, {"ok": True}), ApiResponse(409, {"status": 409}))
        context.call_api("info")

        with pytest.raises(RemoteError):
            context.call_api("create", {"index": "t", "id": "1"})

        assert context.response("status") == 409
        with pytest.raises(PathNotFoundError):
            context.response("ok")

    def test_transport_failure_clears_response(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        failure = TransportError("info", ConnectionRefusedError("refused"))
        transport.queue(ApiResponse(200, {"ok": True}), failure)
        context.call_api("info")

        with pytest.raises(TransportError) as exc_info:
            context.call_api("info")

        assert exc_info.value is failure
        assert context.last_response is None
        assert BODY_KEY in context.stash
        assert context.stash.get("$body") is None
        with pytest.raises(NoResponseError):
            context.response("ok")

    def test_unexpected_error_propagates_unchanged(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        transport.queue(ApiResponse(200, {"ok": True}), RuntimeError("boom"))
        context.call_api("info")

        with pytest.raises(RuntimeError, match="boom"):
            context.call_api("info")

        assert context.last_response is None
        assert context.stash.get("$body") is None

    @pytest.mark.parametrize(
        "outcome,expected_body",
        [
            (ApiResponse(200, {"a": 1}), {"a": 1}),
            (ApiResponse(500, {"error": "x"}), {"error": "x"}),
            (ApiResponse(200, "text body"), "text body"),
            (TransportError("info"), None),
        ],
    )
    def test_body_always_stashed(
        self,
        context: ExecutionContext,
        transport: FakeTransport,
        outcome,
        expected_body,
    ) -> None:
        transport.queue(outcome)
        try:
            context.call_api("info")
        except (RemoteError, TransportError):
            pass
        assert context.stash.get("$body") == expected_body
        if context.last_response is not None:
            assert context.last_response.body == context.stash.get("$body")


class TestResponse:
    """Tests for response() path evaluation."""

    def test_no_response_yet(self, context: ExecutionContext) -> None:
        with pytest.raises(NoResponseError):
            context.response("anything")

    def test_whole_body(self, context: ExecutionContext, transport: FakeTransport) -> None:
        transport.queue(ApiResponse(200, {"a": {"b": 1}}))
        context.call_api("info")
        assert context.response("$body") == {"a": {"b": 1}}

    def test_stashed_path(self, context: ExecutionContext, transport: FakeTransport) -> None:
        transport.queue(ApiResponse(200, {"a": {"b": "found"}}))
        context.call_api("info")
        context.stash.set("stashed_path", "a.b")
        assert context.response("$stashed_path") == "found"

    def test_stashed_segment(self, context: ExecutionContext, transport: FakeTransport) -> None:
        transport.queue(ApiResponse(200, {"nodes": {"n1": {"name": "alpha"}}}))
        context.call_api("info")
        context.stash.set("node", "n1")
        assert context.response("nodes.$node.name") == "alpha"

    def test_path_not_found(self, context: ExecutionContext, transport: FakeTransport) -> None:
        transport.queue(ApiResponse(200, {"a": 1}))
        context.call_api("info")
        with pytest.raises(PathNotFoundError):
            context.response("b")


class TestClear:
    """Tests for clear()."""

    def test_clear_resets_response_and_stash(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        transport.queue(ApiResponse(200, {"a": 1}))
        context.call_api("info")
        context.stash.set("x", "1")

        context.clear()

        assert context.last_response is None
        assert len(context.stash) == 0
        with pytest.raises(NoResponseError):
            context.response("a")

    def test_clear_after_remote_error(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        transport.queue(ApiResponse(400, {"error": "bad"}))
        with pytest.raises(RemoteError):
            context.call_api("search")
        context.clear()
        with pytest.raises(NoResponseError):
            context.response("$body")

    def test_clear_notifies_display(
        self, context: ExecutionContext, mock_display: MagicMock
    ) -> None:
        context.clear()
        mock_display.print_reset.assert_called_once()


class TestEsVersion:
    """Tests for es_version()."""

    def test_delegates_to_transport(self, context: ExecutionContext) -> None:
        assert str(context.es_version()) == "6.0.0"

    def test_legacy_version_skips_error_trace_for_put_settings(
        self, mock_display: MagicMock
    ) -> None:
        transport = FakeTransport(es_version="5.1.1")
        ctx = ExecutionContext(transport, mock_display)

        ctx.call_api("cluster.put_settings", {}, [{"transient": {}}])
        ctx.call_api("cluster.put_settings", {"error_trace": "false"})
        ctx.call_api("cluster.get_settings", {})

        assert "error_trace" not in transport.calls[0]["params"]
        assert transport.calls[1]["params"]["error_trace"] == "false"
        assert transport.calls[2]["params"]["error_trace"] == "true"


class TestVersionLookup:
    """Tests for when the service version is looked up."""

    def test_not_looked_up_without_matching_rule(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        context.call_api("search", {"index": "test"})
        context.call_api("cluster.get_settings")
        assert transport.version_calls == 0

    def test_not_looked_up_without_default_params(self, mock_display: MagicMock) -> None:
        transport = FakeTransport()
        transport.version_error = TransportError("info")
        ctx = ExecutionContext(transport, mock_display, default_params=[])

        ctx.call_api("cluster.put_settings", {}, [{"transient": {}}])

        assert transport.version_calls == 0
        assert transport.calls[0]["api"] == "cluster.put_settings"

    def test_looked_up_for_version_bounded_rule(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        context.call_api("cluster.put_settings", {}, [{"transient": {}}])
        assert transport.version_calls == 1

    def test_failed_lookup_response_is_captured(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        transport.queue(ApiResponse(200, {"ok": True}))
        context.call_api("search")
        root_error = ApiResponse(401, {"error": "unauthorized"})
        transport.version_error = RemoteError("info", root_error)

        with pytest.raises(RemoteError) as exc_info:
            context.call_api("cluster.put_settings", {}, [{"transient": {}}])

        assert exc_info.value.api_name == "info"
        assert len(transport.calls) == 1
        assert context.last_response is root_error
        assert context.stash.get("$body") == {"error": "unauthorized"}

    def test_failed_lookup_without_response_clears_last_response(
        self, context: ExecutionContext, transport: FakeTransport
    ) -> None:
        transport.queue(ApiResponse(200, {"ok": True}))
        context.call_api("search")
        transport.version_error = TransportError("info")

        with pytest.raises(TransportError):
            context.call_api("cluster.put_settings", {}, [{"transient": {}}])

        assert context.last_response is None
        assert context.stash.get("$body") is None
