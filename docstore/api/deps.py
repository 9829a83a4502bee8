from dataclasses import dataclass

from fastapi import Header, HTTPException, status


@dataclass(frozen=True, slots=True)
class TenantContext:
    """Caller's tenant, resolved upstream by the authentication layer.

    Passed explicitly into every storage operation.
    """

    org_id: str | None = None
    company_id: str | None = None

    @property
    def is_global(self) -> bool:
        return not self.org_id and not self.company_id


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


async def get_tenant_context(
    org_id: str | None = Header(default=None, alias="X-Org-Id"),
    company_id: str | None = Header(default=None, alias="X-Company-Id"),
) -> TenantContext:
    ctx = TenantContext(org_id=_clean(org_id), company_id=_clean(company_id))
    if ctx.is_global:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Tenant resolution failed: provide X-Org-Id or X-Company-Id header",
        )
    return ctx


async def get_actor_id(user_id: str | None = Header(default=None, alias="X-User-Id")) -> str | None:
    return _clean(user_id)
