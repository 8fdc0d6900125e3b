"""Document uploads.

Files are kept under ``settings.upload_dir`` as
``<user_id>/<timestamp>-<random>.<ext>``; metadata rows live in the
``documents`` table. If the metadata insert fails the stored file is
removed again.
"""
import os
import secrets
import time
from typing import Any, Dict, List, Optional

from loguru import logger

from auth.context import AuthContext
from config.business_config import business_config
from config.settings import settings
from errors import NotFoundError, PermissionDeniedError, ValidationError
from reports.formatting import format_file_size

ATTACHMENT_FIELDS = ("income_id", "expense_id", "workshop_id", "client_id")


class LocalDocumentStore:
    """Stores uploaded bytes on the local disk."""

    def __init__(self, root: Optional[str] = None) -> None:
        self.root = root or settings.upload_dir

    @staticmethod
    def build_path(user_id: Any, file_name: str) -> str:
        """``<user_id>/<ms timestamp>-<random>.<ext>`` relative path."""
        ext = os.path.splitext(file_name)[1].lstrip(".").lower() or "bin"
        return f"{user_id}/{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"

    def full_path(self, relative: str) -> str:
        return os.path.join(self.root, *relative.split("/"))

    def save(self, relative: str, content: bytes) -> None:
        path = self.full_path(relative)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(content)

    def read(self, relative: str) -> bytes:
        with open(self.full_path(relative), "rb") as f:
            return f.read()

    def delete(self, relative: str) -> None:
        path = self.full_path(relative)
        if os.path.exists(path):
            os.remove(path)


def validate_upload(file_name: str, content_type: Optional[str],
                    size: int) -> None:
    """Size and MIME checks.

    Raises:
        ValidationError: Empty name, too large, or type not allowed.
    """
    if not file_name:
        raise ValidationError("Please select a file")
    if size > settings.max_upload_size:
        raise ValidationError(
            f"File size must be less than {format_file_size(settings.max_upload_size)}"
        )
    if content_type not in business_config.get_allowed_file_types():
        raise ValidationError("File type not supported")


class DocumentService:
    """Upload, list and delete documents on behalf of a caller."""

    def __init__(self, db, store: Optional[LocalDocumentStore] = None) -> None:
        self.db = db
        self.store = store or LocalDocumentStore()

    def upload(self, auth: AuthContext, file_name: str, content: bytes,
               content_type: Optional[str], document_type: str = "other",
               description: Optional[str] = None,
               **attachment: Optional[int]) -> Dict[str, Any]:
        """Store a file and its metadata row.

        Args:
            auth: Caller.
            file_name: Original file name.
            content: File bytes.
            content_type: MIME type.
            document_type: One of the configured document types.
            description: Free text.
            **attachment: At most one of ``income_id``, ``expense_id``,
                ``workshop_id``, ``client_id``.

        Returns:
            Document dict.

        Raises:
            ValidationError: Rejected file or attachment.
        """
        validate_upload(file_name, content_type, len(content))
        allowed_types = {t["value"] for t in business_config.get_document_types()}
        if document_type not in allowed_types:
            raise ValidationError(f"Unknown document type: {document_type}")
        links = {k: v for k, v in attachment.items()
                 if k in ATTACHMENT_FIELDS and v is not None}
        if len(links) > 1:
            raise ValidationError("A document can be attached to one record only")

        relative = self.store.build_path(auth.profile_id, file_name)
        self.store.save(relative, content)
        try:
            document = self.db.add_document(
                file_name=file_name,
                file_url=relative,
                file_size=len(content),
                file_type=content_type,
                uploaded_by=auth.profile_id,
                document_type=document_type,
                description=description,
                **links,
            )
        except Exception:
            self.store.delete(relative)
            logger.warning(f"Removed orphaned upload {relative} after insert failure")
            raise
        logger.info(f"Document {document['id']} uploaded by {auth.profile_id}: {file_name}")
        return document

    def list(self, auth: AuthContext, search: Optional[str] = None,
             document_type: Optional[str] = None,
             source: Optional[str] = None) -> List[Dict[str, Any]]:
        """Documents visible to the caller; admins see all uploads."""
        try:
            documents = self.db.list_documents(
                search, document_type, source, auth.scope_user_id
            )
        except ValueError as e:
            raise ValidationError(str(e))
        for d in documents:
            d["file_size_text"] = format_file_size(d["file_size"])
        return documents

    def _get_owned(self, auth: AuthContext, document_id: int) -> Dict[str, Any]:
        document = self.db.get_document(document_id)
        if document is None:
            raise NotFoundError("Document not found")
        if not auth.can_modify(document["uploaded_by"]):
            raise PermissionDeniedError("You can only manage your own documents")
        return document

    def read(self, auth: AuthContext, document_id: int) -> tuple:
        """``(document, bytes)`` for a download."""
        document = self._get_owned(auth, document_id)
        try:
            return document, self.store.read(document["file_url"])
        except FileNotFoundError:
            raise NotFoundError("Document file is missing")

    def delete(self, auth: AuthContext, document_id: int) -> None:
        """Delete the row and the stored file (admin or uploader only)."""
        document = self._get_owned(auth, document_id)
        self.db.delete_document(document_id)
        try:
            self.store.delete(document["file_url"])
        except OSError as e:
            logger.warning(f"Could not delete stored file {document['file_url']}: {e}")
