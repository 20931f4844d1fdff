"""
Tests for storage_service — disposal certificate uploads.
"""

import io
import os

import pytest
from werkzeug.datastructures import FileStorage

from tech_inventory.services import storage_service


def _upload(filename, content=b"%PDF-1.4 certificate"):
    return FileStorage(stream=io.BytesIO(content), filename=filename)


class TestAllowedFile:
    @pytest.mark.parametrize("name", ["cert.pdf", "photo.JPG", "form.docx"])
    def test_allowed(self, name):
        assert storage_service.allowed_file(name)

    @pytest.mark.parametrize("name", ["script.exe", "noextension", "", None])
    def test_rejected(self, name):
        assert not storage_service.allowed_file(name)


class TestSaveDocument:
    def test_saved_under_asset_folder(self, app):
        with app.app_context():
            filename = storage_service.save_disposal_document(5, _upload("Cert 2024.PDF"))
            path = storage_service.document_path(5, filename)

        assert filename.endswith(".pdf")
        assert path is not None
        assert os.path.dirname(path) == os.path.join(app.config["UPLOAD_FOLDER"], "5")
        with open(path, "rb") as handle:
            assert handle.read() == b"%PDF-1.4 certificate"

    def test_two_uploads_do_not_collide(self, app):
        with app.app_context():
            first = storage_service.save_disposal_document(5, _upload("cert.pdf"))
            second = storage_service.save_disposal_document(5, _upload("cert.pdf"))
        assert first != second

    def test_disallowed_extension(self, app):
        with app.app_context():
            with pytest.raises(ValueError, match="must be one of"):
                storage_service.save_disposal_document(5, _upload("payload.exe"))

    def test_remove_document(self, app):
        with app.app_context():
            filename = storage_service.save_disposal_document(8, _upload("cert.png"))
            storage_service.remove_document(8, filename)
            assert storage_service.document_path(8, filename) is None


class TestDocumentPath:
    def test_missing_and_traversal(self, app):
        with app.app_context():
            assert storage_service.document_path(1, "missing.pdf") is None
            assert storage_service.document_path(1, "../../etc/passwd") is None
