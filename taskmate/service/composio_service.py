"""
Composio access layer.

Composio returns results in several envelope shapes depending on the toolkit
and SDK version (``{"data": {"items": [...]}}``, ``{"items": [...]}``,
``{"data": {"response_data": [...]}}``, a bare list, ...). The helpers here
walk those shapes without raising, and ``ComposioService`` hides the SDK
behind a small, dict-returning interface.
"""
from typing import Any, Iterable, Optional, Sequence
from taskmate.config import COMPOSIO_API_KEY, TOOL_CACHE_SECONDS
from taskmate.utils.cache import cache
from taskmate.utils.logger import get_logger

logger = get_logger("composio")


class ComposioError(Exception):
    """Raised when a Composio call fails or Composio is not configured."""


def field(obj: Any, *names: str, default: Any = None) -> Any:
    """
    First non-empty attribute or key among ``names`` on a dict or an object.
    """
    if obj is None:
        return default
    for name in names:
        if isinstance(obj, dict):
            value = obj.get(name)
        else:
            value = getattr(obj, name, None)
        if value is not None and value != "":
            return value
    return default


def dig(obj: Any, path: str) -> Any:
    """
    Follow a dotted path (``data.items``) through dicts and objects; ``""`` is the object itself.
    """
    if not path:
        return obj
    current = obj
    for part in path.split("."):
        current = field(current, part)
        if current is None:
            return None
    return current


def extract_list(result: Any, *paths: str) -> list:
    """
    Return the first list found at one of ``paths`` (tried in order), else ``[]``.
    """
    for path in paths:
        value = dig(result, path)
        if isinstance(value, list):
            return value
    return []


def result_error(result: Any) -> Any:
    """
    Error reported inside a tool result, either at the top level or under ``data``.
    """
    return field(result, "error") or dig(result, "data.error")


def normalize_tool(tool: Any) -> dict:
    """
    Reduce any SDK tool representation to ``{name, description, parameters}``.

    Handles raw Composio tools (``slug``/``input_parameters``) and
    provider-wrapped OpenAI function tools (``{"type": "function", "function": {...}}``).
    """
    wrapped = field(tool, "function")
    source = wrapped if wrapped is not None else tool
    return {
        "name": field(source, "slug", "name", default=""),
        "description": field(source, "description", default=""),
        "parameters": field(source, "input_parameters", "parameters", default={}),
    }


def find_tool(
    tools: Iterable[dict],
    names: Sequence[str] = (),
    keyword_pairs: Sequence[Sequence[str]] = (),
) -> Optional[dict]:
    """
    Pick a tool by exact name first, then by names containing every keyword of a pair.

    Args:
        tools: normalised tools
        names: exact tool names in order of preference
        keyword_pairs: e.g. (("list", "event"), ("find", "event")), matched case-insensitively

    Returns:
        the matching tool or None
    """
    tools = list(tools)
    for name in names:
        for tool in tools:
            if tool.get("name") == name:
                return tool
    for tool in tools:
        lowered = (tool.get("name") or "").lower()
        for keywords in keyword_pairs:
            if all(keyword in lowered for keyword in keywords):
                return tool
    return None


def normalize_account(account: Any) -> dict:
    """
    Reduce a connected account to ``{id, status, toolkit, external_user_id}``.
    """
    toolkit = field(account, "toolkit")
    slug = toolkit if isinstance(toolkit, str) else field(toolkit, "slug")
    return {
        "id": field(account, "id", "nanoid"),
        "status": field(account, "status"),
        "toolkit": slug.lower() if isinstance(slug, str) else None,
        "external_user_id": field(account, "user_id", "externalUserId", "external_user_id", "userId"),
    }


class ComposioService:
    """
    Thin wrapper around the Composio SDK client.

    The client is created lazily so the application starts without a key;
    calls made without one raise ComposioError.
    """

    def __init__(self, client: Any = None, api_key: Optional[str] = None, cache_seconds: int = TOOL_CACHE_SECONDS):
        self._client = client
        self.api_key = api_key if api_key is not None else COMPOSIO_API_KEY
        self.cache_seconds = cache_seconds

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    @property
    def client(self):
        if self._client is None:
            if not self.api_key:
                raise ComposioError("Composio API key not configured. Please set COMPOSIO_API_KEY in your .env file.")
            from composio import Composio

            self._client = Composio(api_key=self.api_key)
        return self._client

    # ------------------------------------------------------------------ tools

    def list_tools(
        self,
        user_id: str,
        toolkits: Sequence[str],
        search: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """
        Tools available to ``user_id`` in ``toolkits``, normalised and cached.
        """
        toolkits = [toolkit.upper() for toolkit in toolkits]
        cache_key = f"tools:{user_id}:{','.join(toolkits)}:{search or ''}:{limit or ''}"
        if self.cache_seconds > 0:
            cached = cache.get(cache_key)
            if cached is not None:
                return cached

        options = {"toolkits": toolkits}
        if search:
            options["search"] = search
        if limit:
            options["limit"] = int(limit)

        try:
            raw_tools = self.client.tools.get(user_id=user_id, **options)
        except ComposioError:
            raise
        except Exception as e:
            raise ComposioError(f"Failed to list {','.join(toolkits)} tools: {e}") from e

        tools = [normalize_tool(tool) for tool in (raw_tools or [])]
        if self.cache_seconds > 0:
            cache.set(cache_key, tools, expire=self.cache_seconds)
        return tools

    def discover_tool(
        self,
        user_id: str,
        toolkit: str,
        names: Sequence[str],
        keyword_pairs: Sequence[Sequence[str]],
        search: str,
        limit: int = 100,
        search_limit: int = 50,
    ) -> Optional[dict]:
        """
        Locate a tool whose exact slug varies between toolkit versions.

        Order: exact names in the toolkit's first batch, exact names or
        keywords among search results, then keywords in the first batch.
        """
        tools = self.list_tools(user_id, [toolkit], limit=limit)
        logger.debug(f"Found {len(tools)} {toolkit} tools for {user_id}")

        tool = find_tool(tools, names)
        if tool:
            return tool

        logger.info(f"{toolkit} tool not in first batch, searching for '{search}'")
        search_results = self.list_tools(user_id, [toolkit], search=search, limit=search_limit)
        tool = find_tool(search_results, names, keyword_pairs)
        if tool:
            return tool

        return find_tool(tools, (), keyword_pairs)

    def execute(self, tool_name: str, user_id: str, arguments: dict) -> Any:
        """
        Run ``tool_name`` for ``user_id`` and return the raw result envelope.

        Raises:
            ComposioError: the SDK call failed
        """
        try:
            return self.client.tools.execute(
                tool_name,
                user_id=user_id,
                arguments=arguments,
                dangerously_skip_version_check=True,
            )
        except ComposioError:
            raise
        except Exception as e:
            raise ComposioError(f"{tool_name} failed: {e}") from e

    # --------------------------------------------------------------- accounts

    def link(self, user_id: str, auth_config_id: str, callback_url: str) -> Optional[str]:
        """
        Start a hosted OAuth connection and return the URL the user must visit.
        """
        try:
            request = self.client.connected_accounts.initiate(
                user_id=user_id,
                auth_config_id=auth_config_id,
                callback_url=callback_url,
            )
        except ComposioError:
            raise
        except Exception as e:
            raise ComposioError(f"Failed to start connection: {e}") from e
        return field(request, "redirect_url", "link_url", "redirectUrl", "linkUrl")

    def initiate_api_key(self, user_id: str, auth_config_id: str, api_key: str, base_url: str) -> dict:
        """
        Create an API-key connection (Canvas) and return ``{id, status, redirect_url}``.
        """
        config = {
            "auth_scheme": "API_KEY",
            "val": {
                "api_key": api_key,
                "generic_api_key": api_key,
                "full": base_url,
                "base_url": base_url,
            },
        }
        try:
            request = self.client.connected_accounts.initiate(
                user_id=user_id,
                auth_config_id=auth_config_id,
                config=config,
            )
        except ComposioError:
            raise
        except Exception as e:
            raise ComposioError(f"Failed to start API key connection: {e}") from e
        return {
            "id": field(request, "id", "connected_account_id"),
            "status": field(request, "status"),
            "redirect_url": field(request, "redirect_url", "redirectUrl"),
        }

    def get_account(self, account_id: str) -> dict:
        try:
            return normalize_account(self.client.connected_accounts.get(account_id))
        except ComposioError:
            raise
        except Exception as e:
            raise ComposioError(f"Failed to load connected account {account_id}: {e}") from e

    def list_accounts(self) -> list[dict]:
        try:
            response = self.client.connected_accounts.list()
        except ComposioError:
            raise
        except Exception as e:
            raise ComposioError(f"Failed to list connected accounts: {e}") from e
        items = extract_list(response, "items", "data.items", "")
        return [normalize_account(item) for item in items]

    def delete_account(self, account_id: str) -> None:
        try:
            self.client.connected_accounts.delete(account_id)
        except ComposioError:
            raise
        except Exception as e:
            raise ComposioError(f"Failed to delete connected account {account_id}: {e}") from e


_service: Optional[ComposioService] = None


def get_composio_service() -> ComposioService:
    """FastAPI dependency returning the process-wide service."""
    global _service
    if _service is None:
        _service = ComposioService()
    return _service
