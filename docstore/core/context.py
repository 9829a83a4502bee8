import contextvars

_tenant_label: contextvars.ContextVar[str] = contextvars.ContextVar("tenant_label", default="-")
_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")


def tenant_label(org_id: str | None, company_id: str | None) -> str:
    parts = []
    if org_id:
        parts.append(f"org:{org_id}")
    if company_id:
        parts.append(f"company:{company_id}")
    return "/".join(parts) or "-"


def set_tenant(org_id: str | None, company_id: str | None) -> contextvars.Token:
    return _tenant_label.set(tenant_label(org_id, company_id))


def get_tenant_label() -> str:
    return _tenant_label.get()


def set_request_id(request_id: str) -> contextvars.Token:
    return _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def reset(request_token: contextvars.Token, tenant_token: contextvars.Token) -> None:
    _request_id.reset(request_token)
    _tenant_label.reset(tenant_token)
