"""Document upload service tests."""
import os

import pytest

from auth.context import AuthContext
from business.documents import DocumentService, LocalDocumentStore, validate_upload
from config.settings import settings
from errors import NotFoundError, PermissionDeniedError, ValidationError


@pytest.fixture
def store(tmp_path):
    return LocalDocumentStore(str(tmp_path / "uploads"))


@pytest.fixture
def service(temp_db, store):
    return DocumentService(temp_db, store)


def _upload(service, auth, name="receipt.pdf", content=b"%PDF-1.4 data", **kwargs):
    kwargs.setdefault("content_type", "application/pdf")
    kwargs.setdefault("document_type", "receipt")
    return service.upload(auth, name, content, **kwargs)


class TestValidateUpload:

    def test_ok(self):
        validate_upload("a.png", "image/png", 10)

    def test_missing_name(self):
        with pytest.raises(ValidationError, match="select a file"):
            validate_upload("", "image/png", 10)

    def test_too_large(self):
        with pytest.raises(ValidationError, match="less than 10 MB"):
            validate_upload("a.png", "image/png", settings.max_upload_size + 1)

    def test_type_not_allowed(self):
        with pytest.raises(ValidationError, match="not supported"):
            validate_upload("a.exe", "application/x-msdownload", 10)


class TestLocalDocumentStore:

    def test_build_path(self):
        path = LocalDocumentStore.build_path(7, "Scan.JPG")
        user_dir, name = path.split("/")
        assert user_dir == "7"
        assert name.endswith(".jpg")
        stamp, rest = name.split("-", 1)
        assert stamp.isdigit()
        assert len(rest) == len("abcd1234.jpg")

    def test_missing_extension(self):
        assert LocalDocumentStore.build_path(1, "README").endswith(".bin")

    def test_save_read_delete(self, store):
        store.save("1/a.txt", b"hello")
        assert store.read("1/a.txt") == b"hello"
        store.delete("1/a.txt")
        assert not os.path.exists(store.full_path("1/a.txt"))
        store.delete("1/a.txt")


class TestUpload:
    """DocumentService.upload()."""

    def test_stores_file_and_row(self, service, store, user_auth):
        doc = _upload(service, user_auth, description="January wax")
        assert doc["uploaded_by"] == user_auth.profile_id
        assert doc["file_size"] == len(b"%PDF-1.4 data")
        assert doc["file_url"].startswith(f"{user_auth.profile_id}/")
        assert store.read(doc["file_url"]) == b"%PDF-1.4 data"

    def test_attach_to_income(self, service, temp_db, user_auth, income_data):
        income = temp_db.create_income(income_data, user_auth.profile_id)
        doc = _upload(service, user_auth, income_id=income["id"])
        assert doc["income_id"] == income["id"]

    def test_one_attachment_only(self, service, user_auth):
        with pytest.raises(ValidationError, match="one record"):
            _upload(service, user_auth, income_id=1, client_id=2)

    def test_unknown_document_type(self, service, user_auth):
        with pytest.raises(ValidationError, match="document type"):
            _upload(service, user_auth, document_type="selfie")

    def test_insert_failure_removes_file(self, service, store, temp_db, user_auth, monkeypatch):
        def fail(**metadata):
            raise RuntimeError("insert failed")

        monkeypatch.setattr(temp_db, "add_document", fail)
        with pytest.raises(RuntimeError):
            _upload(service, user_auth)
        user_dir = store.full_path(str(user_auth.profile_id))
        assert os.listdir(user_dir) == []


class TestListReadDelete:
    """Role-scoped listing and owner checks."""

    def test_scoped_listing(self, service, user_auth, admin_auth):
        _upload(service, user_auth, name="mine.pdf")
        _upload(service, admin_auth, name="admins.pdf")

        mine = service.list(user_auth)
        assert [d["file_name"] for d in mine] == ["mine.pdf"]
        assert mine[0]["file_size_text"] == "13 Bytes"
        assert len(service.list(admin_auth)) == 2

    def test_bad_source_is_validation_error(self, service, user_auth):
        with pytest.raises(ValidationError):
            service.list(user_auth, source="bogus")

    def test_read(self, service, user_auth):
        doc = _upload(service, user_auth)
        meta, content = service.read(user_auth, doc["id"])
        assert meta["id"] == doc["id"]
        assert content == b"%PDF-1.4 data"

    def test_read_missing_file(self, service, store, user_auth):
        doc = _upload(service, user_auth)
        store.delete(doc["file_url"])
        with pytest.raises(NotFoundError, match="file is missing"):
            service.read(user_auth, doc["id"])

    def test_delete_by_other_user_denied(self, service, user_auth, make_profile):
        doc = _upload(service, user_auth)
        other = AuthContext.from_profile(make_profile())
        with pytest.raises(PermissionDeniedError):
            service.delete(other, doc["id"])

    def test_admin_can_delete(self, service, store, temp_db, user_auth, admin_auth):
        doc = _upload(service, user_auth)
        service.delete(admin_auth, doc["id"])
        assert temp_db.get_document(doc["id"]) is None
        assert not os.path.exists(store.full_path(doc["file_url"]))

    def test_delete_missing(self, service, admin_auth):
        with pytest.raises(NotFoundError):
            service.delete(admin_auth, 404)
