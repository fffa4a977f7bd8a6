"""
Cookie-backed session store.

The session is serialized as JSON, base64url-encoded and prefixed with
`base64-`. Values longer than MAX_CHUNK_SIZE are split across chunk cookies
named `<name>.0`, `<name>.1`, ... so a large access token never exceeds the
browser's per-cookie limit.
"""
import base64
import binascii
import logging
import re
from collections.abc import Mapping

from pydantic import ValidationError
from starlette.responses import Response

from schemas.auth import Session

logger = logging.getLogger(__name__)

BASE64_PREFIX = "base64-"
MAX_CHUNK_SIZE = 3180
# Browsers cap cookie lifetime at 400 days
SESSION_COOKIE_MAX_AGE = 400 * 24 * 60 * 60
CODE_VERIFIER_MAX_AGE = 10 * 60


def encode_session(session: Session) -> str:
    """Serialize a session to a cookie-safe string."""
    raw = session.model_dump_json().encode("utf-8")
    return BASE64_PREFIX + base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_session(value: str) -> Session | None:
    """Parse a cookie value produced by encode_session. Returns None if it is unreadable."""
    if not value.startswith(BASE64_PREFIX):
        return None
    payload = value[len(BASE64_PREFIX):]
    padding = "=" * (-len(payload) % 4)
    try:
        raw = base64.urlsafe_b64decode(payload + padding)
        return Session.model_validate_json(raw)
    except (binascii.Error, ValueError, ValidationError):
        logger.debug("session_cookie_unreadable", exc_info=True)
        return None


def split_chunks(value: str, size: int = MAX_CHUNK_SIZE) -> list[str]:
    """Split a cookie value into pieces no longer than `size`."""
    return [value[i:i + size] for i in range(0, len(value), size)] or [""]


class SessionStore:
    """Reads and writes the session cookies for one cookie name."""

    def __init__(self, cookie_name: str, secure: bool = False) -> None:
        self.cookie_name = cookie_name
        self.secure = secure
        self._chunk_pattern = re.compile(rf"^{re.escape(cookie_name)}\.(\d+)$")

    @property
    def verifier_cookie_name(self) -> str:
        return f"{self.cookie_name}-code-verifier"

    def _existing_names(self, cookies: Mapping[str, str]) -> set[str]:
        names = {name for name in cookies if self._chunk_pattern.match(name)}
        if self.cookie_name in cookies:
            names.add(self.cookie_name)
        return names

    def read(self, cookies: Mapping[str, str]) -> Session | None:
        """Load the session from request cookies, reassembling chunks if needed."""
        if self.cookie_name in cookies:
            return decode_session(cookies[self.cookie_name])

        chunks: list[str] = []
        index = 0
        while f"{self.cookie_name}.{index}" in cookies:
            chunks.append(cookies[f"{self.cookie_name}.{index}"])
            index += 1
        if not chunks:
            return None
        return decode_session("".join(chunks))

    def write(
        self,
        response: Response,
        session: Session,
        existing: Mapping[str, str] | None = None,
    ) -> None:
        """Persist the session on the response and delete stale chunk cookies."""
        value = encode_session(session)
        if len(value) <= MAX_CHUNK_SIZE:
            written = {self.cookie_name: value}
        else:
            written = {
                f"{self.cookie_name}.{i}": chunk
                for i, chunk in enumerate(split_chunks(value))
            }

        for name, chunk in written.items():
            response.set_cookie(
                name,
                chunk,
                max_age=SESSION_COOKIE_MAX_AGE,
                path="/",
                secure=self.secure,
                httponly=True,
                samesite="lax",
            )
        for name in self._existing_names(existing or {}) - written.keys():
            response.delete_cookie(name, path="/")

    def clear(self, response: Response, existing: Mapping[str, str] | None = None) -> None:
        """Delete every session cookie present on the request."""
        names = self._existing_names(existing or {}) or {self.cookie_name}
        for name in names:
            response.delete_cookie(name, path="/")

    def read_verifier(self, cookies: Mapping[str, str]) -> str | None:
        return cookies.get(self.verifier_cookie_name) or None

    def write_verifier(self, response: Response, verifier: str) -> None:
        response.set_cookie(
            self.verifier_cookie_name,
            verifier,
            max_age=CODE_VERIFIER_MAX_AGE,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite="lax",
        )

    def clear_verifier(self, response: Response) -> None:
        response.delete_cookie(self.verifier_cookie_name, path="/")
