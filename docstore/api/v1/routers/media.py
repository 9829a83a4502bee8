from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from docstore.core.limiter import limiter
from docstore.db.session import get_db
from docstore.services import documents

router = APIRouter(prefix="/media", tags=["media"])


@router.get(
    "/{location_id}/{object_key:path}",
    response_class=StreamingResponse,
    summary="Serve a locally stored document through its permanent URL",
)
@limiter.exempt
async def serve_media(
    location_id: UUID,
    object_key: str,
    db: AsyncSession = Depends(get_db),
) -> StreamingResponse:
    plan = await documents.open_media(db, location_id, object_key)
    return StreamingResponse(
        plan.stream,
        media_type=plan.document.mime_type or "application/octet-stream",
        headers={"Cache-Control": "private, max-age=3600"},
    )
