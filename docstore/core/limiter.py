from slowapi import Limiter
from slowapi.util import get_remote_address

from docstore.core.settings import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    storage_uri=settings.rate_limit_storage_uri,
)

__all__ = ["limiter"]
