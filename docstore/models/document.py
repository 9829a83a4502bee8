import uuid

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID

from docstore.db.base import Base


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (Index("ix_documents_tenant", "org_id", "company_id"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(String, nullable=True)
    company_id = Column(String, nullable=True)

    owner_type = Column(String(32), nullable=False)  # staff_member, company, organization
    owner_id = Column(String, nullable=False, index=True)
    document_type_id = Column(Integer, ForeignKey("document_types.id"), nullable=False, index=True)

    # Frozen at upload time; tenant location switches never rewrite these.
    location_id = Column(
        UUID(as_uuid=True),
        ForeignKey("document_locations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    provider = Column(String(16), nullable=False)
    object_key = Column(String(1024), nullable=False)

    document_name = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    size_bytes = Column(BigInteger, nullable=False, default=0)
    extension = Column(String(32), nullable=True)
    mime_type = Column(String(255), nullable=True)
    uploaded_by = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
