from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any

from starlette.types import ASGIApp, Message, Receive, Scope, Send


def _success_code(status_code: int) -> str:
    mapping = {
        200: "ok",
        201: "created",
        202: "accepted",
    }
    return mapping.get(status_code, "ok")


def _success_message(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Success"


def build_success_envelope(data: Any, status_code: int = 200, message: str | None = None) -> dict[str, Any]:
    return {
        "code": _success_code(status_code),
        "message": message or _success_message(status_code),
        "data": data,
        "details": {},
    }


def _is_enveloped(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    return "code" in payload and "message" in payload and ("data" in payload or "details" in payload)


def _rewrite_headers(headers: list[tuple[bytes, bytes]], body: bytes) -> list[tuple[bytes, bytes]]:
    kept = [(k, v) for k, v in headers if k.lower() not in {b"content-length", b"content-type"}]
    kept.append((b"content-type", b"application/json"))
    kept.append((b"content-length", str(len(body)).encode()))
    return kept


class ResponseEnvelopeMiddleware:
    """Wrap 2xx JSON bodies (and empty 204s) in the ``{code, message, data, details}`` envelope.

    File streams, redirects and non-JSON responses pass through untouched.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start: Message | None = None
        chunks: list[bytes] = []
        passthrough = False

        async def send_wrapper(message: Message) -> None:
            nonlocal start, passthrough
            if message["type"] == "http.response.start":
                status = message["status"]
                headers = dict(message.get("headers", []))
                content_type = headers.get(b"content-type", b"")
                wrap = status == 204 or (
                    200 <= status < 300 and content_type.startswith(b"application/json")
                )
                if not wrap:
                    passthrough = True
                    await send(message)
                    return
                start = message
                return

            if passthrough or start is None:
                await send(message)
                return

            chunks.append(message.get("body", b""))
            if message.get("more_body", False):
                return

            status = start["status"]
            raw = b"".join(chunks)
            payload = json.loads(raw) if raw else None
            if status == 204:
                status = 200
            if not _is_enveloped(payload):
                payload = build_success_envelope(payload, status)
            body = json.dumps(payload).encode("utf-8")
            await send(
                {
                    "type": "http.response.start",
                    "status": status,
                    "headers": _rewrite_headers(list(start.get("headers", [])), body),
                }
            )
            await send({"type": "http.response.body", "body": body, "more_body": False})

        await self.app(scope, receive, send_wrapper)


def register_response_envelope(app) -> None:
    app.add_middleware(ResponseEnvelopeMiddleware)
