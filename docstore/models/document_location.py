import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, String, func, text
from sqlalchemy.dialects.postgresql import UUID

from docstore.db.base import Base


class DocumentLocation(Base):
    """A tenant's storage backend selection.

    Owned by an organization or a company, never both; both null marks the
    global default. Only one location per tenant is active; inactive rows stay
    around for the documents that were stored against them.
    """

    __tablename__ = "document_locations"
    __table_args__ = (
        CheckConstraint(
            "org_id IS NULL OR company_id IS NULL",
            name="ck_document_locations_single_owner",
        ),
        Index(
            "uq_document_locations_active_owner",
            text("coalesce(org_id, '')"),
            text("coalesce(company_id, '')"),
            unique=True,
            postgresql_where=text("is_active"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    provider = Column(String(16), nullable=False)  # local, wasabi, aws
    org_id = Column(String, nullable=True, index=True)
    company_id = Column(String, nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @property
    def is_global(self) -> bool:
        return self.org_id is None and self.company_id is None
