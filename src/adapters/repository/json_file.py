"""
JSON file repository adapter - Implements RegistrationStore protocol.

The whole registration collection lives in one JSON document:

    {
      "registrations": [ {camelCase registration fields...}, ... ],
      "stats": {"fakeBaseCount": 3000, "lastUpdated": "..."}
    }

Every operation reads and parses the whole file. Writes serialize the
whole document to a temporary file in the same directory and rename it
over the original with os.replace, so a crash mid-write leaves the last
committed document intact.

Concurrency: a lock serializes read-modify-write sequences inside one
process. Nothing coordinates writers in different processes; two
processes sharing the file can lose each other's updates.
"""

import json
import logging
import os
import tempfile
import threading
import uuid
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from src.domain.exceptions import (
    AlreadyVerified,
    BackendUnavailable,
    DuplicateEmail,
    InvalidToken,
    TokenExpired,
)
from src.domain.ports import Registration, RegistrationStatus, Stats, StorageKind
from src.domain.registration import (
    VERIFICATION_TTL,
    generate_token,
    token_digest,
    utcnow,
    validate_email,
    validate_full_name,
)
from src.domain.stats import advance_fake_base_count, build_stats

logger = logging.getLogger(__name__)

DATA_FILE_NAME = "registrations.json"
_DIGEST_KEY = "verifiedTokenDigest"


class JsonFileRegistrationRepository:
    """
    Implements RegistrationStore protocol on a local JSON document.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Full name is stored when given but not required.
    """

    kind = StorageKind.FILE
    requires_full_name = False
    supports_full_name = True

    def __init__(self, data_dir: Path, clock: Callable[[], datetime] = utcnow) -> None:
        """
        Initialize repository, creating the data file if it is missing.

        Args:
            data_dir: Directory holding registrations.json
            clock: Source of the current time (UTC)

        Raises:
            BackendUnavailable: Directory or file cannot be created
        """
        self._clock = clock
        self._lock = threading.Lock()
        self.data_file = Path(data_dir) / DATA_FILE_NAME
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackendUnavailable(f"Cannot create data directory {self.data_file.parent}") from e
        if not self.data_file.exists():
            self._write_data(self._default_data())
            logger.info(f"Created data file: {self.data_file}")

    def add_registration(self, email: str, full_name: str | None = None) -> Registration:
        normalized_email = validate_email(email)
        trimmed_name = validate_full_name(full_name, self.requires_full_name)

        with self._lock:
            data = self._read_data()
            if any(r["email"] == normalized_email for r in data["registrations"]):
                raise DuplicateEmail(normalized_email)

            now = self._clock()
            registration = Registration(
                id=uuid.uuid4().hex,
                email=normalized_email,
                full_name=trimmed_name,
                status=RegistrationStatus.PENDING,
                created_at=now,
                verification_token=generate_token(),
                verification_expires_at=now + VERIFICATION_TTL,
            )
            data["registrations"].append(registration.to_dict())
            self._write_data(data)
        return registration

    def get_registration_by_token(self, token: str) -> Registration | None:
        if not token:
            return None
        with self._lock:
            data = self._read_data()
        record = self._find_by_token(data, token)
        return Registration.from_dict(record) if record is not None else None

    def verify_registration(self, token: str) -> Registration:
        with self._lock:
            data = self._read_data()
            record = self._find_by_token(data, token) if token else None
            if record is None:
                if token and any(
                    r.get(_DIGEST_KEY) == token_digest(token) for r in data["registrations"]
                ):
                    raise AlreadyVerified("Email already verified")
                raise InvalidToken("Invalid verification token")

            registration = Registration.from_dict(record)
            now = self._clock()
            if registration.is_expired(now):
                raise TokenExpired("Verification token has expired")
            if not registration.is_pending:
                raise AlreadyVerified("Email already verified")

            verified = registration.mark_verified(now)
            record.clear()
            record.update(verified.to_dict())
            record[_DIGEST_KEY] = token_digest(token)
            self._write_data(data)
        return verified

    def get_stats(self) -> Stats:
        with self._lock:
            data = self._read_data()
            statuses = [r.get("status") for r in data["registrations"]]
            registered = statuses.count(RegistrationStatus.REGISTERED.value)
            pending = statuses.count(RegistrationStatus.PENDING.value)

            stored = (data.get("stats") or {}).get("fakeBaseCount")
            now = self._clock()
            fake_base_count, advanced = advance_fake_base_count(stored, now)
            if advanced:
                data["stats"] = {"fakeBaseCount": fake_base_count, "lastUpdated": now.isoformat()}
                self._write_data(data)
        return build_stats(registered, pending, fake_base_count)

    def list_registrations(self) -> list[Registration]:
        with self._lock:
            data = self._read_data()
        registrations = [Registration.from_dict(r) for r in data["registrations"]]
        return sorted(registrations, key=lambda r: r.created_at, reverse=True)

    def clear_registrations(self) -> None:
        with self._lock:
            self._write_data(self._default_data())
        logger.info(f"Cleared registrations in {self.data_file}")

    def _default_data(self) -> dict[str, Any]:
        now = self._clock()
        fake_base_count, _ = advance_fake_base_count(None, now)
        return {
            "registrations": [],
            "stats": {"fakeBaseCount": fake_base_count, "lastUpdated": now.isoformat()},
        }

    def _read_data(self) -> dict[str, Any]:
        """
        Read and parse the data file.

        Raises:
            BackendUnavailable: File missing, unreadable, not valid JSON, or not
                a document with a registrations list
        """
        try:
            data = json.loads(self.data_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Error reading data file {self.data_file}: {e}")
            raise BackendUnavailable("Failed to read data") from e
        if (
            not isinstance(data, dict)
            or not isinstance(data.setdefault("registrations", []), list)
            or not isinstance(data.get("stats", {}), (dict, type(None)))
        ):
            logger.error(f"Unexpected document shape in data file {self.data_file}")
            raise BackendUnavailable("Failed to read data")
        return data

    def _write_data(self, data: dict[str, Any]) -> None:
        """
        Atomically replace the data file with ``data``.

        Raises:
            BackendUnavailable: Write or rename failed; previous file kept
        """
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self.data_file.parent, prefix=f".{DATA_FILE_NAME}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                json.dump(data, tmp, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.data_file)
        except OSError as e:
            logger.error(f"Error writing data file {self.data_file}: {e}")
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise BackendUnavailable("Failed to save data") from e

    @staticmethod
    def _find_by_token(data: dict[str, Any], token: str) -> dict[str, Any] | None:
        return next(
            (r for r in data["registrations"] if r.get("verificationToken") == token), None
        )
