"""
Remote table repository adapter - Implements RegistrationStore protocol.

Talks to a hosted PostgREST-style table service (Supabase) over HTTPS
with httpx. The logical schema matches the PostgreSQL store except that
status is kept as a boolean ``is_verified`` column.

Known weaker guarantee: the service offers no multi-statement
transaction, so the existence check and the insert, and the read and the
update in verify_registration, are separate requests. The verify PATCH
is filtered on ``is_verified=eq.false`` and an empty result is reported
as AlreadyVerified, which narrows the race window but does not close it.

Stats are read from a ``stats`` table or view maintained on the service.
A missing stats row is a hard fault here, unlike the other stores which
compute stats from scratch.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import httpx

from src.config.settings import Settings
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

logger = logging.getLogger(__name__)

USER_AGENT = "Prelaunch Registration Server 0.1"
"""User agent."""

REGISTRATIONS = "/registrations"
STATS = "/stats"


def _parse_timestamp(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _to_registration(row: dict[str, Any]) -> Registration:
    return Registration(
        id=str(row["id"]),
        email=row["email"],
        full_name=row.get("full_name"),
        status=RegistrationStatus.REGISTERED if row.get("is_verified") else RegistrationStatus.PENDING,
        created_at=_parse_timestamp(row["created_at"]),
        verification_token=row.get("verification_token"),
        verification_expires_at=_parse_timestamp(row.get("verification_expires_at")),
        verified_at=_parse_timestamp(row.get("verified_at")),
    )


class RemoteTableRegistrationRepository:
    """
    Implements RegistrationStore protocol via the PostgREST HTTP API.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Every request carries the client's timeout; transport failures and
    non-2xx responses surface as BackendUnavailable.
    """

    kind = StorageKind.REMOTE
    requires_full_name = True
    supports_full_name = True

    def __init__(self, client: httpx.Client, clock: Callable[[], datetime] = utcnow) -> None:
        """
        Initialize repository with a configured HTTP client.

        Args:
            client: httpx.Client whose base_url points at ``<service>/rest/v1``
                and which carries the API key headers
            clock: Source of the current time (UTC)
        """
        self._client = client
        self._clock = clock

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Remote table request failed: {method} {path} - {e}")
            raise BackendUnavailable("Remote table service unavailable") from e

    def _json(self, response: httpx.Response) -> Any:
        if response.is_error:
            logger.error(
                f"Remote table error {response.status_code}: {response.request.method} "
                f"{response.request.url.path} - {response.text}"
            )
            raise BackendUnavailable(f"Remote table service returned {response.status_code}")
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Remote table sent a non-JSON body: {response.request.url.path}")
            raise BackendUnavailable("Remote table service returned an unreadable response") from e

    def _select(self, **filters: str) -> list[dict[str, Any]]:
        params = {"select": "*", **filters}
        return self._json(self._request("GET", REGISTRATIONS, params=params))

    def add_registration(self, email: str, full_name: str | None = None) -> Registration:
        normalized_email = validate_email(email)
        trimmed_name = validate_full_name(full_name, self.requires_full_name)

        if self.is_email_registered(normalized_email):
            raise DuplicateEmail(normalized_email)

        now = self._clock()
        payload = {
            "email": normalized_email,
            "full_name": trimmed_name,
            "created_at": now.isoformat(),
            "is_verified": False,
            "verification_token": generate_token(),
            "verification_expires_at": (now + VERIFICATION_TTL).isoformat(),
        }
        response = self._request(
            "POST", REGISTRATIONS, json=payload, headers={"Prefer": "return=representation"}
        )
        if response.status_code == httpx.codes.CONFLICT:
            raise DuplicateEmail(normalized_email)
        rows = self._json(response)
        return _to_registration(rows[0])

    def is_email_registered(self, email: str) -> bool:
        rows = self._json(
            self._request("GET", REGISTRATIONS, params={"select": "id", "email": f"eq.{email}"})
        )
        return bool(rows)

    def get_registration_by_token(self, token: str) -> Registration | None:
        if not token:
            return None
        rows = self._select(verification_token=f"eq.{token}")
        return _to_registration(rows[0]) if rows else None

    def verify_registration(self, token: str) -> Registration:
        registration = self.get_registration_by_token(token)
        digest = token_digest(token) if token else None
        if registration is None:
            if digest and self._select(verified_token_digest=f"eq.{digest}"):
                raise AlreadyVerified("Email already verified")
            raise InvalidToken("Invalid verification token")

        now = self._clock()
        if registration.is_expired(now):
            raise TokenExpired("Verification token has expired")
        if not registration.is_pending:
            raise AlreadyVerified("Email already verified")

        update = {
            "is_verified": True,
            "verified_at": now.isoformat(),
            "verification_token": None,
            "verification_expires_at": None,
            "verified_token_digest": digest,
        }
        rows = self._json(
            self._request(
                "PATCH",
                REGISTRATIONS,
                params={"verification_token": f"eq.{token}", "is_verified": "eq.false"},
                json=update,
                headers={"Prefer": "return=representation"},
            )
        )
        if not rows:
            # Another caller consumed the token between our read and this update
            raise AlreadyVerified("Email already verified")
        return _to_registration(rows[0])

    def get_stats(self) -> Stats:
        """
        Read counts from the service's stats row.

        Raises:
            BackendUnavailable: Request failed or no stats row exists
        """
        rows = self._json(
            self._request(
                "GET",
                STATS,
                params={"select": "total_registrations,verified_registrations,pending_registrations"},
            )
        )
        if not rows:
            raise BackendUnavailable("No stats records found")

        row = rows[0]
        registered = row.get("verified_registrations") or 0
        pending = row.get("pending_registrations") or 0
        total = row.get("total_registrations")
        return Stats(
            total_registered=registered,
            total_pending=pending,
            total=total if total is not None else registered + pending,
            fake_base_count=0,
        )

    def list_registrations(self) -> list[Registration]:
        rows = self._select(order="created_at.desc")
        return [_to_registration(row) for row in rows]

    def clear_registrations(self) -> None:
        self._json(self._request("DELETE", REGISTRATIONS, params={"id": "not.is.null"}))
        logger.info("Remote table registrations cleared")

    def close(self) -> None:
        self._client.close()


def create_remote_repository(settings: Settings) -> RemoteTableRegistrationRepository:
    """
    Build the repository with an httpx client for the configured service.

    Raises:
        BackendUnavailable: URL or key missing
    """
    key = settings.supabase_key
    if not settings.supabase_url or not key:
        raise BackendUnavailable(
            "Missing remote table configuration - need SUPABASE_URL and a service role or anon key"
        )

    client = httpx.Client(
        base_url=f"{settings.supabase_url.rstrip('/')}/rest/v1",
        headers={
            "User-Agent": USER_AGENT,
            "apikey": key,
            "Authorization": f"Bearer {key}",
        },
        timeout=settings.http_timeout_seconds,
    )
    return RemoteTableRegistrationRepository(client)
