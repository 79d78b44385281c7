"""HTTP client for the chat service."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Callable, Sequence

import httpx
from pydantic import TypeAdapter, ValidationError

from chatterm.api.errors import ProtocolError, TransportError
from chatterm.api.result import ApiResult, Failure, Ok
from chatterm.api.schema import (
    AppInfo,
    Config,
    Message,
    MessagePart,
    ProviderList,
    Session,
)
from chatterm.log_utils import log_event

logger = logging.getLogger(__name__)

_ERROR_BODY_MAX = 240

_APP_INFO = TypeAdapter(AppInfo)
_CONFIG = TypeAdapter(Config)
_PROVIDER_LIST = TypeAdapter(ProviderList)
_SESSION = TypeAdapter(Session)
_SESSIONS = TypeAdapter(list[Session])
_MESSAGES = TypeAdapter(list[Message])
_PARTS = TypeAdapter(list[MessagePart])


class ServiceClient:
    """One method per remote operation; each returns an `ApiResult`.

    Transport failures and non-2xx statuses never raise: they come back as a
    `Failure` so callers decide whether the operation is critical. Nothing is
    retried here.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._base_url = base_url

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ServiceClient":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.aclose()

    async def get_app_info(self) -> ApiResult[AppInfo]:
        return await self._call("get app info", "/app_info", parse=_APP_INFO)

    async def get_config(self) -> ApiResult[Config]:
        return await self._call("get config", "/config_get", parse=_CONFIG)

    async def list_providers(self) -> ApiResult[ProviderList]:
        return await self._call("list providers", "/provider_list", parse=_PROVIDER_LIST)

    async def create_session(self) -> ApiResult[Session]:
        return await self._call("create session", "/session_create", parse=_SESSION)

    async def list_sessions(self) -> ApiResult[list[Session]]:
        return await self._call("list sessions", "/session_list", parse=_SESSIONS, empty=list)

    async def delete_session(self, session_id: str) -> ApiResult[None]:
        return await self._call("delete session", "/session_delete", body={"sessionID": session_id})

    async def abort_session(self, session_id: str) -> ApiResult[None]:
        return await self._call("cancel session", "/session_abort", body={"sessionID": session_id})

    async def summarize_session(self, session_id: str, provider_id: str, model_id: str) -> ApiResult[None]:
        return await self._call(
            "compact session",
            "/session_summarize",
            body={"sessionID": session_id, "providerID": provider_id, "modelID": model_id},
        )

    async def initialize_session(self, session_id: str, provider_id: str, model_id: str) -> ApiResult[None]:
        return await self._call(
            "initialize project",
            "/session_initialize",
            body={"sessionID": session_id, "providerID": provider_id, "modelID": model_id},
        )

    async def mark_app_initialized(self) -> ApiResult[None]:
        return await self._call("mark project as initialized", "/app_initialize")

    async def list_messages(self, session_id: str) -> ApiResult[list[Message]]:
        return await self._call(
            "list messages",
            "/session_messages",
            body={"sessionID": session_id},
            parse=_MESSAGES,
            empty=list,
        )

    async def send_chat(
        self,
        session_id: str,
        parts: Sequence[Any],
        provider_id: str,
        model_id: str,
    ) -> ApiResult[None]:
        return await self._call(
            "send message",
            "/session_chat",
            body={
                "sessionID": session_id,
                "parts": _PARTS.dump_python(list(parts), mode="json", by_alias=True, exclude_none=True),
                "providerID": provider_id,
                "modelID": model_id,
            },
        )

    async def events(self) -> AsyncIterator[dict[str, Any]]:
        """Yield decoded server-sent events from the `/event` stream.

        Raises `TransportError`/`ProtocolError` if the stream cannot be opened
        or drops; the caller owns reconnect policy.
        """
        try:
            async with self._client.stream(
                "GET",
                "/event",
                headers={"Accept": "text/event-stream"},
                timeout=httpx.Timeout(None, connect=10.0),
            ) as response:
                if not response.is_success:
                    await response.aread()
                    raise ProtocolError("subscribe to events", response.status_code, _error_body(response))
                async for item in _iter_sse(response):
                    yield item
        except httpx.HTTPError as exc:
            raise TransportError("subscribe to events", _describe(exc)) from exc

    async def _call(
        self,
        operation: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        parse: TypeAdapter[Any] | None = None,
        empty: Callable[[], Any] | None = None,
    ) -> ApiResult[Any]:
        try:
            response = await self._client.post(path, json=body or {})
        except httpx.HTTPError as exc:
            log_event(logger, "api.transport_error", level=logging.ERROR, operation=operation, error=_describe(exc))
            return Failure(TransportError(operation, _describe(exc)))

        if not response.is_success:
            detail = _error_body(response)
            log_event(
                logger,
                "api.status_error",
                level=logging.ERROR,
                operation=operation,
                status=response.status_code,
                body=detail,
            )
            return Failure(ProtocolError(operation, response.status_code, detail))

        if parse is None:
            return Ok(None)

        try:
            payload = response.json() if response.content else None
        except ValueError:
            return Failure(ProtocolError(operation, response.status_code, "response is not JSON"))
        if payload is None and empty is not None:
            return Ok(empty())
        try:
            return Ok(parse.validate_python(payload))
        except ValidationError as exc:
            log_event(logger, "api.invalid_body", level=logging.ERROR, operation=operation, errors=exc.error_count())
            return Failure(ProtocolError(operation, response.status_code, "invalid response body"))


async def _iter_sse(response: httpx.Response) -> AsyncIterator[dict[str, Any]]:
    buffered: list[str] = []
    async for line in response.aiter_lines():
        if line.startswith("data:"):
            buffered.append(line[5:].strip())
        elif line.strip() == "":
            if not buffered:
                continue
            raw = "\n".join(buffered)
            buffered = []
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Skipping undecodable event: %s", raw[:_ERROR_BODY_MAX])
                continue
            if isinstance(payload, dict):
                yield payload


def _error_body(response: httpx.Response) -> str:
    try:
        text = response.text
    except Exception:  # noqa: BLE001 - undecodable bodies only lose the detail
        return ""
    return text.strip()[:_ERROR_BODY_MAX]


def _describe(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__
