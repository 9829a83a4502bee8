import re
import secrets
from datetime import datetime, timezone
from pathlib import PurePosixPath

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")
_UNSAFE_SEGMENT_CHARS = re.compile(r"[^a-zA-Z0-9_-]")
MAX_FILENAME_LENGTH = 120
FALLBACK_FILENAME = "upload.bin"


class KeyGenerator:
    @staticmethod
    def safe_filename(filename: str | None) -> str:
        """Reduce a client-supplied name to a single harmless path segment."""
        if not filename:
            return FALLBACK_FILENAME
        # Client names may carry either separator; only the last component is kept.
        base = PurePosixPath(filename.replace("\\", "/")).name
        cleaned = _UNSAFE_NAME_CHARS.sub("_", base).lstrip(".")
        if not cleaned.strip("_"):
            return FALLBACK_FILENAME
        if len(cleaned) > MAX_FILENAME_LENGTH:
            suffix = PurePosixPath(cleaned).suffix[:16]
            cleaned = cleaned[: MAX_FILENAME_LENGTH - len(suffix)] + suffix
        return cleaned

    @staticmethod
    def _segment(value: object) -> str:
        cleaned = _UNSAFE_SEGMENT_CHARS.sub("_", str(value))[:64]
        return cleaned or "_"

    @staticmethod
    def tenant_prefix(org_id: str | None, company_id: str | None) -> str:
        if org_id:
            return f"orgs/{KeyGenerator._segment(org_id)}"
        if company_id:
            return f"companies/{KeyGenerator._segment(company_id)}"
        return "global"

    @staticmethod
    def generate_object_key(
        *,
        org_id: str | None,
        company_id: str | None,
        owner_type: str,
        owner_id: str,
        document_type_id: int,
        filename: str | None,
        now: datetime | None = None,
    ) -> str:
        now = now or datetime.now(timezone.utc)
        stamp = now.strftime("%Y%m%dT%H%M%S%f")
        suffix = secrets.token_hex(4)
        return "/".join(
            [
                KeyGenerator.tenant_prefix(org_id, company_id),
                KeyGenerator._segment(owner_type),
                KeyGenerator._segment(owner_id),
                f"type-{KeyGenerator._segment(document_type_id)}",
                now.strftime("%Y"),
                f"{stamp}-{suffix}-{KeyGenerator.safe_filename(filename)}",
            ]
        )
