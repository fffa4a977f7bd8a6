"""Tests for the cookie-backed session store."""
from starlette.responses import Response

from core.session import (
    BASE64_PREFIX,
    MAX_CHUNK_SIZE,
    SessionStore,
    decode_session,
    encode_session,
    split_chunks,
)
from fakes import is_deletion, make_session, parse_set_cookies, set_cookie_value
from schemas.auth import Identity, Session

COOKIE = "sb-auth-token"


def written_cookies(response: Response) -> dict[str, str]:
    return parse_set_cookies(response.headers.getlist("set-cookie"))


class TestEncoding:
    """Tests for the cookie value format."""

    def test__encode_session__uses_base64_prefix(self) -> None:
        value = encode_session(make_session())
        assert value.startswith(BASE64_PREFIX)
        assert "=" not in value

    def test__decode_session__reads_encoded_value(self) -> None:
        session = make_session().model_copy(
            update={"user": Identity(id="user-1", email="ada@example.com")},
        )
        assert decode_session(encode_session(session)) == session

    def test__decode_session__rejects_garbage(self) -> None:
        """Unreadable cookies are treated as no session."""
        assert decode_session("not-a-session") is None
        assert decode_session(BASE64_PREFIX + "!!!") is None
        assert decode_session(BASE64_PREFIX + "eyJmb28iOiAiYmFyIn0") is None  # {"foo": "bar"}

    def test__split_chunks__respects_size(self) -> None:
        value = "x" * (MAX_CHUNK_SIZE * 2 + 5)
        chunks = split_chunks(value)
        assert [len(c) for c in chunks] == [MAX_CHUNK_SIZE, MAX_CHUNK_SIZE, 5]
        assert "".join(chunks) == value


class TestSessionStore:
    """Tests for reading and writing session cookies."""

    def test__write__small_session_uses_single_cookie(self) -> None:
        store = SessionStore(COOKIE)
        response = Response()
        store.write(response, make_session())

        cookies = written_cookies(response)
        assert list(cookies) == [COOKIE]
        header = cookies[COOKIE].lower()
        assert "httponly" in header
        assert "samesite=lax" in header
        assert "path=/" in header
        assert "secure" not in header

    def test__write__secure_flag(self) -> None:
        store = SessionStore(COOKIE, secure=True)
        response = Response()
        store.write(response, make_session())
        assert "secure" in written_cookies(response)[COOKIE].lower()

    def test__write__large_session_is_chunked_and_read_back(self) -> None:
        """A session too large for one cookie is split and reassembled."""
        store = SessionStore(COOKIE)
        session = make_session(access_token="a" * 6000)
        response = Response()
        store.write(response, session)

        cookies = written_cookies(response)
        assert COOKIE not in cookies
        assert set(cookies) == {f"{COOKIE}.0", f"{COOKIE}.1", f"{COOKIE}.2"}
        for header in cookies.values():
            assert len(set_cookie_value(header)) <= MAX_CHUNK_SIZE

        request_cookies = {name: set_cookie_value(h) for name, h in cookies.items()}
        assert store.read(request_cookies) == session

    def test__write__deletes_stale_chunks(self) -> None:
        """Shrinking a chunked session back to one cookie removes the old chunks."""
        store = SessionStore(COOKIE)
        existing = {f"{COOKIE}.0": "a", f"{COOKIE}.1": "b", "unrelated": "c"}
        response = Response()
        store.write(response, make_session(), existing)

        cookies = written_cookies(response)
        assert not is_deletion(cookies[COOKIE])
        assert is_deletion(cookies[f"{COOKIE}.0"])
        assert is_deletion(cookies[f"{COOKIE}.1"])
        assert "unrelated" not in cookies

    def test__read__missing_cookie(self) -> None:
        assert SessionStore(COOKIE).read({}) is None

    def test__read__ignores_other_cookie_names(self) -> None:
        value = encode_session(make_session())
        assert SessionStore(COOKIE).read({"other-token": value}) is None

    def test__read__single_cookie(self) -> None:
        session = make_session()
        assert SessionStore(COOKIE).read({COOKIE: encode_session(session)}) == session

    def test__read__unreadable_cookie(self) -> None:
        assert SessionStore(COOKIE).read({COOKIE: "garbage"}) is None

    def test__clear__deletes_every_session_cookie(self) -> None:
        store = SessionStore(COOKIE)
        response = Response()
        store.clear(response, {f"{COOKIE}.0": "a", f"{COOKIE}.1": "b"})

        cookies = written_cookies(response)
        assert set(cookies) == {f"{COOKIE}.0", f"{COOKIE}.1"}
        assert all(is_deletion(h) for h in cookies.values())

    def test__clear__without_existing_cookies_still_expires_main_cookie(self) -> None:
        response = Response()
        SessionStore(COOKIE).clear(response)
        assert is_deletion(written_cookies(response)[COOKIE])

    def test__verifier_cookie__round_trip(self) -> None:
        store = SessionStore(COOKIE)
        assert store.verifier_cookie_name == f"{COOKIE}-code-verifier"

        response = Response()
        store.write_verifier(response, "verifier-123")
        header = written_cookies(response)[store.verifier_cookie_name]
        assert set_cookie_value(header) == "verifier-123"
        assert "max-age=600" in header.lower()
        assert store.read_verifier({store.verifier_cookie_name: "verifier-123"}) == "verifier-123"
        assert store.read_verifier({}) is None

        cleared = Response()
        store.clear_verifier(cleared)
        assert is_deletion(written_cookies(cleared)[store.verifier_cookie_name])


def test__session__expires_within() -> None:
    session = Session(access_token="a", refresh_token="r", expires_at=1_000)
    assert session.expires_within(10, now=995) is True
    assert session.expires_within(10, now=980) is False


def test__session__from_token_response_derives_expiry() -> None:
    """Older providers only send expires_in."""
    session = Session.from_token_response(
        {"access_token": "a", "refresh_token": "r", "expires_in": 3600},
    )
    assert session.expires_within(3600)
    assert not session.expires_within(3000)
