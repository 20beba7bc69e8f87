"""
Unit tests for JsonFileRegistrationRepository.

Covers the on-disk document layout, the file-existence bootstrap and
the atomic replace. The shared contract lives in test_store_contract.py.
"""

import json
import os
import shutil
from pathlib import Path

import pytest

from src.adapters.repository.json_file import DATA_FILE_NAME, JsonFileRegistrationRepository
from src.domain.exceptions import BackendUnavailable
from src.domain.ports import StorageKind
from src.domain.stats import generate_fake_base_count


def read_document(directory: Path) -> dict:
    return json.loads((directory / DATA_FILE_NAME).read_text())


class TestBootstrap:
    """Tests for data file creation."""

    def test_creates_file_with_default_document(self, tmp_path: Path, clock) -> None:
        JsonFileRegistrationRepository(tmp_path, clock=clock)

        document = read_document(tmp_path)
        assert document["registrations"] == []
        assert document["stats"]["fakeBaseCount"] == generate_fake_base_count(clock())
        assert "lastUpdated" in document["stats"]

    def test_creates_missing_directories(self, tmp_path: Path, clock) -> None:
        nested = tmp_path / "a" / "b"

        JsonFileRegistrationRepository(nested, clock=clock)

        assert (nested / DATA_FILE_NAME).exists()

    def test_existing_file_is_kept(self, tmp_path: Path, clock) -> None:
        """A second instance reads the data written by the first."""
        first = JsonFileRegistrationRepository(tmp_path, clock=clock)
        registration = first.add_registration("user@example.com")

        second = JsonFileRegistrationRepository(tmp_path, clock=clock)

        found = second.get_registration_by_token(registration.verification_token)
        assert found is not None
        assert found.email == "user@example.com"


class TestDocumentLayout:
    """Tests for the persisted JSON layout."""

    def test_registration_fields_are_camel_case(
        self, json_store: JsonFileRegistrationRepository, tmp_path: Path
    ) -> None:
        registration = json_store.add_registration("user@example.com", "Jane Doe")

        record = read_document(tmp_path)["registrations"][0]
        assert record == {
            "id": registration.id,
            "email": "user@example.com",
            "fullName": "Jane Doe",
            "status": "pending",
            "createdAt": registration.created_at.isoformat(),
            "verificationToken": registration.verification_token,
            "verificationExpiresAt": registration.verification_expires_at.isoformat(),
            "verifiedAt": None,
        }

    def test_verified_record_clears_token_and_keeps_digest(
        self, json_store: JsonFileRegistrationRepository, tmp_path: Path
    ) -> None:
        registration = json_store.add_registration("user@example.com")
        json_store.verify_registration(registration.verification_token)

        record = read_document(tmp_path)["registrations"][0]
        assert record["status"] == "registered"
        assert record["verificationToken"] is None
        assert record["verificationExpiresAt"] is None
        assert record["verifiedAt"] is not None
        assert record["verifiedTokenDigest"] != registration.verification_token
        assert len(record["verifiedTokenDigest"]) == 64

    def test_stats_advance_is_persisted(
        self, json_store: JsonFileRegistrationRepository, tmp_path: Path, clock
    ) -> None:
        clock.advance(days=2)

        stats = json_store.get_stats()

        assert read_document(tmp_path)["stats"]["fakeBaseCount"] == stats.fake_base_count


class TestFullNameCapability:
    """Full name is optional for the file store."""

    def test_full_name_not_required(self, json_store: JsonFileRegistrationRepository) -> None:
        assert json_store.requires_full_name is False
        registration = json_store.add_registration("user@example.com")
        assert registration.full_name is None

    def test_kind_is_file(self, json_store: JsonFileRegistrationRepository) -> None:
        assert json_store.kind == StorageKind.FILE


class TestAtomicWrite:
    """Tests for crash safety of writes."""

    def test_failed_rename_keeps_previous_file(
        self,
        json_store: JsonFileRegistrationRepository,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A write that dies before the rename leaves the committed file intact."""
        json_store.add_registration("kept@example.com")
        before = (tmp_path / DATA_FILE_NAME).read_text()

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(BackendUnavailable):
            json_store.add_registration("lost@example.com")

        assert (tmp_path / DATA_FILE_NAME).read_text() == before
        document = read_document(tmp_path)
        assert [r["email"] for r in document["registrations"]] == ["kept@example.com"]

    def test_failed_write_leaves_no_temp_files(
        self,
        json_store: JsonFileRegistrationRepository,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(BackendUnavailable):
            json_store.add_registration("lost@example.com")

        assert sorted(p.name for p in tmp_path.iterdir()) == [DATA_FILE_NAME]

    def test_failed_verify_write_leaves_registration_pending(
        self,
        json_store: JsonFileRegistrationRepository,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        registration = json_store.add_registration("user@example.com")

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)
        with pytest.raises(BackendUnavailable):
            json_store.verify_registration(registration.verification_token)
        monkeypatch.undo()

        found = json_store.get_registration_by_token(registration.verification_token)
        assert found is not None
        assert found.is_pending

    def test_missing_directory_raises_backend_unavailable(self, tmp_path: Path, clock) -> None:
        """Temp file creation failing is a storage fault like a failed rename."""
        store = JsonFileRegistrationRepository(tmp_path / "data", clock=clock)
        shutil.rmtree(tmp_path / "data")

        with pytest.raises(BackendUnavailable):
            store.clear_registrations()
        with pytest.raises(BackendUnavailable):
            store.add_registration("user@example.com")


class TestCorruptFile:
    """Tests for unreadable data files."""

    def test_corrupt_file_raises_backend_unavailable(
        self, json_store: JsonFileRegistrationRepository, tmp_path: Path
    ) -> None:
        """Corrupt JSON is reported, not silently replaced with an empty document."""
        (tmp_path / DATA_FILE_NAME).write_text("{not json")

        with pytest.raises(BackendUnavailable):
            json_store.get_stats()

        assert (tmp_path / DATA_FILE_NAME).read_text() == "{not json"

    @pytest.mark.parametrize(
        "content",
        [
            "[]",
            "null",
            "42",
            '{"registrations": {}}',
            '{"registrations": "none"}',
            '{"registrations": [], "stats": []}',
        ],
    )
    def test_unexpected_document_shape_raises_backend_unavailable(
        self, json_store: JsonFileRegistrationRepository, tmp_path: Path, content: str
    ) -> None:
        (tmp_path / DATA_FILE_NAME).write_text(content)

        with pytest.raises(BackendUnavailable):
            json_store.get_stats()
        with pytest.raises(BackendUnavailable):
            json_store.list_registrations()

        assert (tmp_path / DATA_FILE_NAME).read_text() == content
