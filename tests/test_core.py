"""
Tests for ghupload.core module.

Tests upload orchestration including:
- End-to-end register and push workflow
- Forced overwrite (list and delete)
- Registration and storage failures
- File validation
- Registration response parsing
"""

from __future__ import annotations

import json
import re

import pytest
import requests_mock

from ghupload.auth import Credentials, TokenManager, TokenState
from ghupload.core import (
    RemoteFile,
    UploadOrchestrator,
    UploadRequest,
    UploadTicket,
    upload_file,
)
from ghupload.exceptions import (
    InvalidInvocationError,
    RemoteConflictError,
    StorageRejectedError,
)
from ghupload.io import MultipartEncoder
from ghupload.logging import get_logger, set_global_logger

API = "https://api.github.com"
DOWNLOADS = f"{API}/repos/acme/tools/downloads"
S3_URL = "https://github.s3.amazonaws.com/"

PDF_BYTES = bytes(range(256)) * 4


@pytest.fixture
def report_pdf(create_file):
    """Provide a 1024-byte report.pdf."""
    return create_file("report.pdf", PDF_BYTES)


@pytest.fixture
def orchestrator_factory(config, transport, prompter, make_token_cache):
    """
    Factory fixture for orchestrators with a cached token.

    Usage:
        orchestrator, cache = orchestrator_factory()
        orchestrator, cache = orchestrator_factory(Credentials(token="t"))
    """

    def _create(credentials=None, cached="cached-token", mime="application/pdf"):
        cache = make_token_cache(cached)
        manager = TokenManager(
            credentials or Credentials(),
            transport=transport,
            cache=cache,
            prompter=prompter,
            api_url=config.api_url,
        )
        orchestrator = UploadOrchestrator(
            config,
            transport=transport,
            token_manager=manager,
            content_type_detector=lambda path: mime,
            encoder=MultipartEncoder(boundary_factory=lambda: "test-boundary"),
        )
        return orchestrator, cache

    return _create


def _field_names(body: bytes) -> list[str]:
    return [n.decode() for n in re.findall(rb'form-data; name="([^"]+)"', body)]


class TestEndToEnd:
    """Tests for the complete upload workflow."""

    def test_upload_report_pdf(
        self, report_pdf, orchestrator_factory, registration_response
    ):
        """Test a plain upload: register, push, return s3_url + path."""
        orchestrator, cache = orchestrator_factory()
        request = UploadRequest.create(report_pdf, "acme/tools")

        with requests_mock.Mocker() as m:
            m.post(DOWNLOADS, status_code=201, json=registration_response)
            m.post(S3_URL, status_code=201)
            result = orchestrator.upload(request)

        # No listing without --force; one registration; one storage push.
        methods = [(r.method, r.url) for r in m.request_history]
        assert methods == [("POST", DOWNLOADS), ("POST", S3_URL)]

        register = m.request_history[0]
        assert register.headers["Authorization"] == "token cached-token"
        assert '"name":"report.pdf"' in register.text
        assert register.json() == {
            "name": "report.pdf",
            "size": "1024",
            "description": "",
            "content_type": "application/pdf",
        }

        push = m.request_history[1]
        assert "Authorization" not in push.headers
        assert push.headers["Content-Type"] == (
            "multipart/form-data; boundary=test-boundary"
        )
        assert push.body.endswith(PDF_BYTES + b"\r\n--test-boundary--")
        last_part = push.body.rsplit(b"--test-boundary\r\n", 1)[1]
        assert last_part.startswith(
            b'Content-Disposition: form-data; name="file"; filename="report.pdf"\r\n'
        )
        assert b"Content-Length: 1024\r\n" in last_part

        assert result.url == S3_URL + "downloads/acme/tools/report.pdf"
        assert result.size == 1024
        assert result.mime_type == "application/pdf"
        assert result.deleted_ids == []
        assert result.status == "success"
        assert cache.stored == []

    def test_storage_fields_in_fixed_order(
        self, report_pdf, orchestrator_factory, registration_response
    ):
        """Test that signed fields go first and the file goes last."""
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.post(DOWNLOADS, status_code=201, json=registration_response)
            m.post(S3_URL, status_code=201)
            orchestrator.upload(UploadRequest.create(report_pdf, "acme/tools"))

        body = m.last_request.body
        assert _field_names(body) == [
            "key",
            "acl",
            "success_action_status",
            "Filename",
            "AWSAccessKeyId",
            "Policy",
            "signature",
            "Content-Type",
            "file",
        ]
        assert b"\r\n\r\ndownloads/acme/tools/report.pdf\r\n" in body
        assert b"\r\n\r\n201\r\n" in body
        assert b"\r\n\r\nAKIAEXAMPLE\r\n" in body

    def test_custom_name_and_description(
        self, report_pdf, orchestrator_factory, registration_response
    ):
        """Test that --name and --description reach the registration call."""
        orchestrator, _ = orchestrator_factory()
        request = UploadRequest.create(
            report_pdf,
            "acme/tools",
            display_name="report-2024.pdf",
            description="Annual report",
        )

        with requests_mock.Mocker() as m:
            m.post(DOWNLOADS, status_code=201, json=registration_response)
            m.post(S3_URL, status_code=201)
            orchestrator.upload(request)

        payload = m.request_history[0].json()
        assert payload["name"] == "report-2024.pdf"
        assert payload["description"] == "Annual report"

    def test_content_type_parameters_are_stripped(
        self, report_pdf, orchestrator_factory, registration_response
    ):
        """Test that charset and similar parameters are dropped."""
        orchestrator, _ = orchestrator_factory(mime="text/plain; charset=us-ascii")

        with requests_mock.Mocker() as m:
            m.post(DOWNLOADS, status_code=201, json=registration_response)
            m.post(S3_URL, status_code=201)
            result = orchestrator.upload(UploadRequest.create(report_pdf, "acme/tools"))

        assert m.request_history[0].json()["content_type"] == "text/plain"
        assert result.mime_type == "text/plain"


class TestRegistrationFailures:
    """Tests for registration errors."""

    def test_client_error_means_name_taken(self, report_pdf, orchestrator_factory):
        """Test that a 4xx yields RemoteConflictError without a storage push."""
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.post(DOWNLOADS, status_code=422, json={"message": "Validation Failed"})
            m.post(S3_URL, status_code=201)

            with pytest.raises(RemoteConflictError, match="already exists"):
                orchestrator.upload(UploadRequest.create(report_pdf, "acme/tools"))

        assert [r.url for r in m.request_history] == [DOWNLOADS]

    def test_non_created_success_is_rejected(self, report_pdf, orchestrator_factory):
        """Test that 200 instead of 201 is treated as a rejection."""
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.post(DOWNLOADS, status_code=200, json={})

            with pytest.raises(RemoteConflictError, match="refused"):
                orchestrator.upload(UploadRequest.create(report_pdf, "acme/tools"))

    def test_server_error_is_rejected(self, report_pdf, orchestrator_factory):
        """Test that a 5xx is reported as a rejection, not a name clash."""
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.post(DOWNLOADS, status_code=502)

            with pytest.raises(RemoteConflictError, match="502"):
                orchestrator.upload(UploadRequest.create(report_pdf, "acme/tools"))

    def test_incomplete_registration_response(
        self, report_pdf, orchestrator_factory, registration_response
    ):
        """Test that a response missing signed fields is rejected."""
        orchestrator, _ = orchestrator_factory()
        del registration_response["policy"]

        with requests_mock.Mocker() as m:
            m.post(DOWNLOADS, status_code=201, json=registration_response)

            with pytest.raises(RemoteConflictError, match="policy"):
                orchestrator.upload(UploadRequest.create(report_pdf, "acme/tools"))

        assert m.call_count == 1


class TestStoragePush:
    """Tests for the final object-store POST."""

    def test_storage_rejection(
        self, report_pdf, orchestrator_factory, registration_response
    ):
        """Test that anything but 201 from storage is fatal."""
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.post(DOWNLOADS, status_code=201, json=registration_response)
            m.post(S3_URL, status_code=403, text="<Error>AccessDenied</Error>")

            with pytest.raises(StorageRejectedError, match="403"):
                orchestrator.upload(UploadRequest.create(report_pdf, "acme/tools"))

    def test_storage_200_is_not_enough(
        self, report_pdf, orchestrator_factory, registration_response
    ):
        """Test that storage must answer 201 Created, not just any 2xx."""
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.post(DOWNLOADS, status_code=201, json=registration_response)
            m.post(S3_URL, status_code=200)

            with pytest.raises(StorageRejectedError):
                orchestrator.upload(UploadRequest.create(report_pdf, "acme/tools"))


class TestForceOverwrite:
    """Tests for --force list-and-delete."""

    def test_deletes_every_exact_match(
        self, report_pdf, orchestrator_factory, registration_response
    ):
        """Test that all same-named downloads are deleted, others kept."""
        orchestrator, _ = orchestrator_factory()
        listing = [
            {"id": 1, "name": "report.pdf"},
            {"id": 2, "name": "report.pdf.bak"},
            {"id": 3, "name": "report.pdf"},
            {"id": 4, "name": "Report.pdf"},
        ]

        with requests_mock.Mocker() as m:
            m.get(DOWNLOADS, json=listing)
            m.delete(f"{DOWNLOADS}/1", status_code=204)
            m.delete(f"{DOWNLOADS}/3", status_code=204)
            m.post(DOWNLOADS, status_code=201, json=registration_response)
            m.post(S3_URL, status_code=201)
            result = orchestrator.upload(
                UploadRequest.create(report_pdf, "acme/tools", force_overwrite=True)
            )

        calls = [(r.method, r.url) for r in m.request_history]
        assert calls == [
            ("GET", DOWNLOADS),
            ("DELETE", f"{DOWNLOADS}/1"),
            ("DELETE", f"{DOWNLOADS}/3"),
            ("POST", DOWNLOADS),
            ("POST", S3_URL),
        ]
        assert m.request_history[1].headers["Authorization"] == "token cached-token"
        assert result.deleted_ids == ["1", "3"]

    def test_nothing_to_delete(
        self, report_pdf, orchestrator_factory, registration_response
    ):
        """Test that a forced upload with no match goes straight to register."""
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.get(DOWNLOADS, json=[{"id": 9, "name": "other.zip"}])
            m.post(DOWNLOADS, status_code=201, json=registration_response)
            m.post(S3_URL, status_code=201)
            result = orchestrator.upload(
                UploadRequest.create(report_pdf, "acme/tools", force_overwrite=True)
            )

        assert [r.method for r in m.request_history] == ["GET", "POST", "POST"]
        assert result.deleted_ids == []

    def test_delete_not_found_is_skipped(
        self, report_pdf, orchestrator_factory, registration_response
    ):
        """Test that a 404 on delete does not abort the upload."""
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.get(DOWNLOADS, json=[{"id": 1, "name": "report.pdf"}])
            m.delete(f"{DOWNLOADS}/1", status_code=404)
            m.post(DOWNLOADS, status_code=201, json=registration_response)
            m.post(S3_URL, status_code=201)
            result = orchestrator.upload(
                UploadRequest.create(report_pdf, "acme/tools", force_overwrite=True)
            )

        assert result.deleted_ids == []
        assert m.last_request.url == S3_URL

    def test_delete_failure_is_fatal(self, report_pdf, orchestrator_factory):
        """Test that a non-404 delete failure stops before registration."""
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.get(DOWNLOADS, json=[{"id": 1, "name": "report.pdf"}])
            m.delete(f"{DOWNLOADS}/1", status_code=403)

            with pytest.raises(RemoteConflictError, match="report.pdf"):
                orchestrator.upload(
                    UploadRequest.create(report_pdf, "acme/tools", force_overwrite=True)
                )

        assert [r.method for r in m.request_history] == ["GET", "DELETE"]

    def test_listing_failure_is_fatal(self, report_pdf, orchestrator_factory):
        """Test that a failed listing aborts the upload."""
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.get(DOWNLOADS, status_code=404)

            with pytest.raises(RemoteConflictError, match="Could not list"):
                orchestrator.upload(
                    UploadRequest.create(report_pdf, "acme/tools", force_overwrite=True)
                )

    def test_conflict_after_delete_is_still_fatal(
        self, report_pdf, orchestrator_factory
    ):
        """Test that registration conflicts stay fatal after a forced delete."""
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.get(DOWNLOADS, json=[{"id": 1, "name": "report.pdf"}])
            m.delete(f"{DOWNLOADS}/1", status_code=204)
            m.post(DOWNLOADS, status_code=422)

            with pytest.raises(RemoteConflictError, match="already exists"):
                orchestrator.upload(
                    UploadRequest.create(report_pdf, "acme/tools", force_overwrite=True)
                )

    def test_list_remote_files(self, orchestrator_factory):
        """Test parsing of the downloads listing."""
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.get(DOWNLOADS, json=[{"id": 7, "name": "a.zip", "size": 3}])
            files = orchestrator.list_remote_files("acme/tools", "tok")

        assert files == [RemoteFile(id="7", name="a.zip")]

    def test_listing_entries_without_id_are_skipped(
        self, report_pdf, orchestrator_factory, registration_response
    ):
        """Test that an entry lacking an id is never turned into a DELETE."""
        orchestrator, _ = orchestrator_factory()
        listing = [{"name": "report.pdf"}, {"id": None, "name": "report.pdf"}]

        with requests_mock.Mocker() as m:
            m.get(DOWNLOADS, json=listing)
            m.post(DOWNLOADS, status_code=201, json=registration_response)
            m.post(S3_URL, status_code=201)
            result = orchestrator.upload(
                UploadRequest.create(report_pdf, "acme/tools", force_overwrite=True)
            )

        assert [r.method for r in m.request_history] == ["GET", "POST", "POST"]
        assert result.deleted_ids == []

    def test_deletion_is_reported_without_verbose(
        self, report_pdf, orchestrator_factory, registration_response, capsys
    ):
        """Test that the deleted file name is printed at default verbosity."""
        set_global_logger(get_logger(verbose=False))
        orchestrator, _ = orchestrator_factory()

        with requests_mock.Mocker() as m:
            m.get(DOWNLOADS, json=[{"id": 1, "name": "report.pdf"}])
            m.delete(f"{DOWNLOADS}/1", status_code=204)
            m.post(DOWNLOADS, status_code=201, json=registration_response)
            m.post(S3_URL, status_code=201)
            orchestrator.upload(
                UploadRequest.create(report_pdf, "acme/tools", force_overwrite=True)
            )

        captured = capsys.readouterr()
        assert "Deleting existing file 'report.pdf'" in captured.err
        assert captured.out == ""


class TestFileValidation:
    """Tests for input file checks."""

    def test_missing_file_argument(self, orchestrator_factory):
        """Test that no file path is an invalid invocation."""
        orchestrator, _ = orchestrator_factory()
        request = UploadRequest(
            file_path=None, repository="acme/tools", display_name=""
        )

        with requests_mock.Mocker() as m:
            with pytest.raises(InvalidInvocationError, match="No file"):
                orchestrator.upload(request)

        assert m.call_count == 0

    def test_nonexistent_file(self, tmp_test_dir, orchestrator_factory):
        """Test that a missing file fails before authentication."""
        orchestrator, _ = orchestrator_factory()
        request = UploadRequest.create(tmp_test_dir / "nope.pdf", "acme/tools")

        with requests_mock.Mocker() as m:
            with pytest.raises(InvalidInvocationError, match="File not found"):
                orchestrator.upload(request)

        assert m.call_count == 0
        assert orchestrator.token_manager.state is TokenState.NO_TOKEN

    def test_directory_is_rejected(self, tmp_test_dir, orchestrator_factory):
        """Test that directories cannot be uploaded."""
        orchestrator, _ = orchestrator_factory()

        with pytest.raises(InvalidInvocationError, match="Not a regular file"):
            orchestrator.upload(UploadRequest.create(tmp_test_dir, "acme/tools"))


class TestUploadTicket:
    """Tests for UploadTicket.from_response."""

    def test_from_response(self, registration_response):
        ticket = UploadTicket.from_response(registration_response)

        assert ticket.upload_target_url == S3_URL
        assert ticket.storage_key == "downloads/acme/tools/report.pdf"
        assert ticket.access_control == "public-read"
        assert ticket.access_key_id == "AKIAEXAMPLE"
        assert ticket.mime_type == "application/pdf"
        assert ticket.remote_name == "report.pdf"
        assert ticket.public_url == S3_URL + "downloads/acme/tools/report.pdf"

    def test_non_object_response(self):
        with pytest.raises(RemoteConflictError):
            UploadTicket.from_response(["not", "a", "dict"])


class TestUploadRequest:
    """Tests for UploadRequest.create."""

    def test_defaults_name_to_basename(self, tmp_test_dir):
        request = UploadRequest.create(tmp_test_dir / "dist" / "tool.zip", "acme/tools")

        assert request.display_name == "tool.zip"
        assert request.description == ""
        assert request.force_overwrite is False


class TestUploadFile:
    """Tests for the upload_file convenience wrapper."""

    def test_wires_collaborators(
        self,
        report_pdf,
        config,
        transport,
        token_cache,
        prompter,
        registration_response,
    ):
        """Test that upload_file mints, caches and uploads in one call."""
        with requests_mock.Mocker() as m:
            m.post(f"{API}/authorizations", status_code=201, json={"token": "minted"})
            m.post(DOWNLOADS, status_code=201, json=registration_response)
            m.post(S3_URL, status_code=201)

            result = upload_file(
                UploadRequest.create(report_pdf, "acme/tools"),
                Credentials(),
                config=config,
                prompter=prompter,
                cache=token_cache,
                transport=transport,
                content_type_detector=lambda path: "application/pdf",
            )

        assert token_cache.stored == ["minted"]
        assert m.request_history[1].headers["Authorization"] == "token minted"
        assert json.loads(m.request_history[1].text)["name"] == "report.pdf"
        assert result.url == S3_URL + "downloads/acme/tools/report.pdf"
