"""Tests for Composio envelope parsing and the service wrapper."""

from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from conftest import FakeComposio, make_tools
from taskmate.service.composio_service import (
    ComposioError,
    ComposioService,
    dig,
    extract_list,
    field,
    find_tool,
    normalize_account,
    normalize_tool,
    result_error,
)
from taskmate.utils.cache import cache


class TestEnvelopeHelpers:
    """Test helpers that read Composio's varying result shapes."""

    @pytest.mark.parametrize("result", [
        {"data": {"items": [1, 2]}},
        {"items": [1, 2]},
        [1, 2],
        {"data": [1, 2]},
    ])
    def test_extract_list_known_shapes(self, result):
        assert extract_list(result, "data.items", "items", "", "data") == [1, 2]

    def test_extract_list_respects_path_order(self):
        result = {"data": {"items": ["first"]}, "items": ["second"]}
        assert extract_list(result, "items", "data.items") == ["second"]

    @pytest.mark.parametrize("result", [None, {}, "oops", {"data": {"items": "not a list"}}, 42])
    def test_extract_list_unexpected_shapes(self, result):
        assert extract_list(result, "data.items", "items", "", "data") == []

    def test_dig_through_objects(self):
        result = SimpleNamespace(data=SimpleNamespace(response_data={"id": "evt"}))
        assert dig(result, "data.response_data.id") == "evt"

    def test_field_skips_empty_values(self):
        assert field({"id": "", "messageId": "m1"}, "id", "messageId") == "m1"
        assert field(None, "id", default="x") == "x"

    def test_result_error(self):
        assert result_error({"error": "boom"}) == "boom"
        assert result_error({"data": {"error": "nested"}}) == "nested"
        assert result_error({"data": []}) is None


class TestToolNormalisation:
    """Test tool and account normalisation."""

    def test_raw_tool(self):
        tool = normalize_tool({"slug": "GMAIL_SEND_EMAIL", "description": "Send", "input_parameters": {"a": 1}})
        assert tool == {"name": "GMAIL_SEND_EMAIL", "description": "Send", "parameters": {"a": 1}}

    def test_function_wrapped_tool(self):
        tool = normalize_tool({"type": "function", "function": {"name": "GMAIL_FETCH", "description": "d", "parameters": {}}})
        assert tool["name"] == "GMAIL_FETCH"

    def test_object_tool(self):
        tool = normalize_tool(SimpleNamespace(slug="CANVAS_LIST_COURSES", description=None, input_parameters=None))
        assert tool == {"name": "CANVAS_LIST_COURSES", "description": "", "parameters": {}}

    def test_find_tool_prefers_exact_names_in_order(self):
        tools = [{"name": "GOOGLECALENDAR_LIST_EVENTS"}, {"name": "GOOGLECALENDAR_FIND_EVENT"}]
        found = find_tool(tools, ("GOOGLECALENDAR_FIND_EVENT", "GOOGLECALENDAR_LIST_EVENTS"))
        assert found["name"] == "GOOGLECALENDAR_FIND_EVENT"

    def test_find_tool_keywords(self):
        tools = [{"name": "GMAIL_SEND_EMAIL"}, {"name": "GMAIL_FETCH_MESSAGE_BY_ID"}]
        assert find_tool(tools, ("GMAIL_GET_MESSAGE",), (("fetch", "message"),))["name"] == "GMAIL_FETCH_MESSAGE_BY_ID"
        assert find_tool(tools, (), (("list", "event"),)) is None

    def test_normalize_account(self):
        account = SimpleNamespace(id="ca_1", status="ACTIVE", toolkit=SimpleNamespace(slug="GMAIL"), user_id="user_3")
        assert normalize_account(account) == {
            "id": "ca_1",
            "status": "ACTIVE",
            "toolkit": "gmail",
            "external_user_id": "user_3",
        }

    def test_normalize_account_dict(self):
        account = {"id": "ca_2", "status": "ACTIVE", "toolkit": "canvas", "externalUserId": "user_4"}
        assert normalize_account(account)["external_user_id"] == "user_4"
        assert normalize_account(account)["toolkit"] == "canvas"


class TestComposioService:
    """Test the service wrapper around the SDK client."""

    def test_unconfigured_service_raises(self):
        service = ComposioService(client=None, api_key="")
        assert service.configured is False
        with pytest.raises(ComposioError):
            service.list_tools("user_1", ["GMAIL"])

    def test_execute_wraps_sdk_errors(self):
        fake = FakeComposio(results={"GMAIL_SEND_EMAIL": RuntimeError("quota")})
        service = ComposioService(client=fake, cache_seconds=0)

        with pytest.raises(ComposioError, match="quota"):
            service.execute("GMAIL_SEND_EMAIL", "user_1", {})

    def test_execute_passes_user_and_arguments(self):
        fake = FakeComposio(results={"CANVAS_LIST_COURSES": {"data": []}})
        service = ComposioService(client=fake, cache_seconds=0)

        assert service.execute("CANVAS_LIST_COURSES", "user_1", {"per_page": 100}) == {"data": []}
        assert fake.calls == [("CANVAS_LIST_COURSES", "user_1", {"per_page": 100})]

    def test_list_tools_uppercases_toolkits(self):
        fake = FakeComposio(toolkits={"GMAIL": make_tools("GMAIL_SEND_EMAIL")})
        service = ComposioService(client=fake, cache_seconds=0)

        tools = service.list_tools("user_1", ["gmail"], search="send", limit=5)

        assert [tool["name"] for tool in tools] == ["GMAIL_SEND_EMAIL"]
        fake.tools.get.assert_called_once_with(user_id="user_1", toolkits=["GMAIL"], search="send", limit=5)

    def test_list_tools_is_cached(self):
        cache.clear(pattern="tools:user_cache:")
        fake = FakeComposio(toolkits={"GMAIL": make_tools("GMAIL_SEND_EMAIL")})
        service = ComposioService(client=fake, cache_seconds=60)

        first = service.list_tools("user_cache", ["GMAIL"])
        second = service.list_tools("user_cache", ["GMAIL"])

        assert first == second
        assert fake.tools.get.call_count == 1
        cache.clear(pattern="tools:user_cache:")

    def test_discover_tool_falls_back_to_search(self):
        client = Mock()
        client.tools.get.side_effect = [
            make_tools("GOOGLECALENDAR_CREATE_EVENT"),
            make_tools("GOOGLECALENDAR_EVENTS_LIST"),
        ]
        service = ComposioService(client=client, cache_seconds=0)

        tool = service.discover_tool(
            "user_1", "GOOGLECALENDAR", ("GOOGLECALENDAR_EVENTS_LIST",), (("list", "event"),), search="list events"
        )

        assert tool["name"] == "GOOGLECALENDAR_EVENTS_LIST"
        assert client.tools.get.call_args_list[1].kwargs["search"] == "list events"

    def test_discover_tool_keywords_over_first_batch(self):
        client = Mock()
        client.tools.get.side_effect = [make_tools("GOOGLECALENDAR_FIND_EVENT_V2"), []]
        service = ComposioService(client=client, cache_seconds=0)

        tool = service.discover_tool(
            "user_1", "GOOGLECALENDAR", ("GOOGLECALENDAR_FIND_EVENT",), (("find", "event"),), search="list events"
        )

        assert tool["name"] == "GOOGLECALENDAR_FIND_EVENT_V2"

    def test_link_returns_redirect_url(self):
        client = Mock()
        client.connected_accounts.initiate.return_value = SimpleNamespace(redirect_url="https://link.test/abc")
        service = ComposioService(client=client)

        assert service.link("user_1", "ac_gmail", "https://cb.test") == "https://link.test/abc"
        client.connected_accounts.initiate.assert_called_once_with(
            user_id="user_1", auth_config_id="ac_gmail", callback_url="https://cb.test"
        )

    def test_list_accounts(self):
        client = Mock()
        client.connected_accounts.list.return_value = SimpleNamespace(items=[
            {"id": "ca_1", "status": "ACTIVE", "toolkit": {"slug": "gmail"}, "user_id": "user_1"},
        ])
        service = ComposioService(client=client)

        assert service.list_accounts() == [
            {"id": "ca_1", "status": "ACTIVE", "toolkit": "gmail", "external_user_id": "user_1"},
        ]
