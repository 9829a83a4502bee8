from uuid import uuid4

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from docstore.core import context


class RequestContextMiddleware:
    """Bind request id and tenant label to context vars for log records.

    Only logging reads these; storage operations take the tenant explicitly.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        request_id = headers.get(b"x-request-id", b"").decode().strip() or uuid4().hex
        org_id = headers.get(b"x-org-id", b"").decode().strip() or None
        company_id = headers.get(b"x-company-id", b"").decode().strip() or None

        request_token = context.set_request_id(request_id)
        tenant_token = context.set_tenant(org_id, company_id)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers_list = list(message.get("headers", []))
                headers_list.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers_list
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            context.reset(request_token, tenant_token)
