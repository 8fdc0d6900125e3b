"""System data repositories: uploaded documents and the notification log.

These rows support the financial records (receipts, invoices) and audit
what was sent to admins; they carry no money themselves.
"""
from typing import Optional, List, Dict, Any
from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from .base_crud import BaseCRUD
from .connection import DatabaseConnection
from .models import Document, EmailNotification


# document "source" filter -> column that must be set
DOCUMENT_SOURCES = {
    "income": "income_id",
    "expense": "expense_id",
    "workshop": "workshop_id",
    "client": "client_id",
}


class DocumentRepository(BaseCRUD):
    """Document metadata repository."""

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def search(self, keyword: Optional[str] = None,
               document_type: Optional[str] = None,
               source: Optional[str] = None,
               uploaded_by: Optional[int] = None,
               session: Optional[Session] = None) -> List[Document]:
        """List documents with optional filters, newest first.

        Args:
            keyword: Case-insensitive substring of file name or description.
            document_type: Exact document type, ``all`` or None for any.
            source: ``income`` / ``expense`` / ``workshop`` / ``client`` for
                documents attached to that entity, ``standalone`` for
                documents attached to nothing, ``all`` or None for any.
            uploaded_by: Restrict to one uploader (optional).

        Returns:
            Document list.

        Raises:
            ValueError: Unknown source filter.
        """
        def _query(sess):
            query = sess.query(Document)
            if keyword and keyword.strip():
                pattern = f"%{keyword.strip().lower()}%"
                query = query.filter(or_(
                    func.lower(Document.file_name).like(pattern),
                    func.lower(Document.description).like(pattern),
                ))
            if document_type and document_type != "all":
                query = query.filter(Document.document_type == document_type)
            if uploaded_by is not None:
                query = query.filter(Document.uploaded_by == uploaded_by)
            if source and source != "all":
                if source == "standalone":
                    for column in DOCUMENT_SOURCES.values():
                        query = query.filter(getattr(Document, column).is_(None))
                elif source in DOCUMENT_SOURCES:
                    query = query.filter(
                        getattr(Document, DOCUMENT_SOURCES[source]).isnot(None)
                    )
                else:
                    raise ValueError(f"Unknown document source: {source}")
            return query.order_by(
                Document.created_at.desc(), Document.id.desc()
            ).all()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    @staticmethod
    def to_dict(d: Document) -> Dict[str, Any]:
        return {
            "id": d.id,
            "file_name": d.file_name,
            "file_url": d.file_url,
            "file_size": d.file_size or 0,
            "file_type": d.file_type,
            "uploaded_by": d.uploaded_by,
            "document_type": d.document_type,
            "description": d.description,
            "income_id": d.income_id,
            "expense_id": d.expense_id,
            "workshop_id": d.workshop_id,
            "client_id": d.client_id,
            "created_at": d.created_at.isoformat() if d.created_at else None,
        }


class NotificationRepository(BaseCRUD):
    """Email notification log repository."""

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def log(self, record_type: str, record_id: Optional[int],
            user_id: Optional[int], recipients_count: int,
            failed_count: int = 0, subject: Optional[str] = None) -> int:
        """Record one sent notification.

        Returns:
            The log row id.
        """
        entry = self.create(
            EmailNotification,
            record_type=record_type,
            record_id=record_id,
            user_id=user_id,
            recipients_count=recipients_count,
            failed_count=failed_count,
            subject=subject,
        )
        return entry.id

    def recent(self, limit: int = 50,
               session: Optional[Session] = None) -> List[EmailNotification]:
        """Most recent notifications first."""
        def _query(sess):
            return sess.query(EmailNotification).order_by(
                EmailNotification.sent_at.desc(), EmailNotification.id.desc()
            ).limit(limit).all()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    @staticmethod
    def to_dict(n: EmailNotification) -> Dict[str, Any]:
        return {
            "id": n.id,
            "record_type": n.record_type,
            "record_id": n.record_id,
            "user_id": n.user_id,
            "recipients_count": n.recipients_count or 0,
            "failed_count": n.failed_count or 0,
            "subject": n.subject,
            "sent_at": n.sent_at.isoformat() if n.sent_at else None,
        }
