from __future__ import annotations

from collections.abc import Mapping

import pytest

from casrelay.auth import CasLoginOrchestrator
from casrelay.infra.transport import BaseTransport, RawResponse, TransportError
from casrelay.schemas import LoginFailure, LoginSuccess, TransportConfig, UpstreamConfig

from ..utils import LOGIN_PAGE

CAS = "https://cas.example"
SERVICE = "https://service.example"


class ScriptedTransport(BaseTransport):
    """In-memory transport answering from a fixed ``(method, url)`` table."""

    def __init__(self, routes: dict[tuple[str, str], RawResponse]) -> None:
        super().__init__(TransportConfig(base_url=CAS, timeout=1.0))
        self.routes = routes
        self.sent: list[tuple[str, str, dict[str, str]]] = []
        self._open = False

    async def init(self) -> None:
        self._open = True

    async def close(self) -> None:
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def _request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None,
        data: Mapping[str, str] | None,
    ) -> RawResponse:
        self.sent.append((method, url, dict(headers or {})))
        return self.routes[(method, url)]

    def _translate_error(self, exc: Exception) -> TransportError | None:
        return None

    def cookie_header(self, url: str) -> str | None:
        for _, sent_url, headers in self.sent:
            if sent_url == url:
                return headers.get("Cookie")
        raise AssertionError(f"{url} was never requested")


def _resp(status=200, body="", headers=()):
    return RawResponse(content=body.encode(), status=status, headers=list(headers))


@pytest.fixture
def routes():
    return {
        ("GET", f"{CAS}/cas/login"): _resp(
            body=LOGIN_PAGE.format(execution="e1s1"),
            headers=[("Set-Cookie", "SESSION=s1; Path=/cas")],
        ),
        ("POST", f"{CAS}/cas/login"): _resp(
            302,
            headers=[
                ("Location", f"{SERVICE}/home?ticket=ST-1"),
                ("Set-Cookie", "TGC=granting; Path=/cas"),
            ],
        ),
        ("GET", f"{SERVICE}/home?ticket=ST-1"): _resp(
            302,
            headers=[
                ("Location", f"{CAS}/cas/after"),
                ("Set-Cookie", "MOD_AUTH_CAS=tok-1; Path=/"),
                ("Set-Cookie", "SVC=service-only"),
            ],
        ),
        ("GET", f"{CAS}/cas/after"): _resp(body="done"),
    }


@pytest.mark.asyncio
async def test_cookies_stay_on_the_login_host(routes):
    async with ScriptedTransport(routes) as t:
        outcome = await CasLoginOrchestrator(
            t, UpstreamConfig(login_path="/cas/login")
        ).login("alice", "pw")

    assert isinstance(outcome, LoginSuccess)
    assert outcome.token == "tok-1"

    assert t.cookie_header(f"{SERVICE}/home?ticket=ST-1") is None
    back_on_cas = t.cookie_header(f"{CAS}/cas/after")
    assert back_on_cas == "SESSION=s1; TGC=granting"
    assert "SVC" not in back_on_cas


@pytest.mark.asyncio
async def test_malformed_location_on_login_page_is_session_error(routes):
    routes[("GET", f"{CAS}/cas/login")] = _resp(
        302, headers=[("Location", "http://[::1/cas")]
    )

    async with ScriptedTransport(routes) as t:
        outcome = await CasLoginOrchestrator(
            t, UpstreamConfig(login_path="/cas/login")
        ).login("alice", "pw")

    assert isinstance(outcome, LoginFailure)
    assert outcome.kind == "session_init_error"
    assert outcome.phase == "session"
    assert [m for m, _, _ in t.sent] == ["GET"]


@pytest.mark.asyncio
async def test_relative_location_resolves_against_request_url(routes):
    routes[("POST", f"{CAS}/cas/login")] = _resp(
        302,
        headers=[
            ("Location", "after"),
            ("Set-Cookie", "MOD_AUTH_CAS=tok-2"),
        ],
    )

    async with ScriptedTransport(routes) as t:
        outcome = await CasLoginOrchestrator(
            t, UpstreamConfig(login_path="/cas/login")
        ).login("alice", "pw")

    assert isinstance(outcome, LoginSuccess)
    assert outcome.token == "tok-2"
    assert t.sent[-1][:2] == ("GET", f"{CAS}/cas/after")
