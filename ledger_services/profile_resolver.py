"""
ledger_services.profile_resolver -- identify the acting profile of a request.

Responsibility:
    Turn an inbound request into the ``ProfileInfo`` of the profile making
    it.  The operations facade calls the resolver for every profile-scoped
    read (contract lookups, unpaid job listings).

Architecture position:
    Services layer.  Transport-agnostic: a request is anything exposing a
    ``headers`` mapping, or a plain mapping of header values.

Invariants:
    - Resolution never creates profiles.
    - Every failure is an UnauthenticatedError; callers cannot tell a
      malformed id from an unknown one.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import ProfileInfo
from ledger_kernel.exceptions import UnauthenticatedError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.profile import Profile

logger = get_logger("services.profile_resolver")

DEFAULT_PROFILE_HEADER = "profile_id"


class ProfileResolver(Protocol):
    """Anything that can map a request to the acting profile."""

    def resolve(self, session: Session, request: Any) -> ProfileInfo:
        ...


class HeaderProfileResolver:
    """Reads the acting profile id from a request header."""

    def __init__(self, header_name: str = DEFAULT_PROFILE_HEADER):
        self._header_name = header_name

    @property
    def header_name(self) -> str:
        return self._header_name

    def resolve(self, session: Session, request: Any) -> ProfileInfo:
        """
        Look up the profile named by the request header.

        Raises:
            UnauthenticatedError: Header missing, not a UUID, or no such
                profile.
        """
        raw = self._header_value(request)
        if raw is None or not str(raw).strip():
            raise UnauthenticatedError(f"missing '{self._header_name}' header")

        try:
            profile_id = UUID(str(raw).strip())
        except ValueError:
            raise UnauthenticatedError(
                f"'{self._header_name}' header is not a valid profile id"
            ) from None

        profile = session.get(Profile, profile_id)
        if profile is None:
            logger.warning(
                "profile_resolution_failed",
                extra={"profile_id": str(profile_id)},
            )
            raise UnauthenticatedError("unknown profile")

        return ProfileInfo.from_model(profile)

    def _header_value(self, request: Any) -> Any:
        headers = getattr(request, "headers", request)
        if not isinstance(headers, Mapping) and not hasattr(headers, "get"):
            return None
        value = headers.get(self._header_name)
        if value is None and isinstance(headers, Mapping):
            # Plain dicts are case-sensitive; HTTP header names are not.
            wanted = self._header_name.lower()
            for key, candidate in headers.items():
                if isinstance(key, str) and key.lower() == wanted:
                    return candidate
        return value
