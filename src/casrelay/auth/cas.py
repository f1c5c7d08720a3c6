"""
Two-phase CAS login handshake.

:class:`CasLoginOrchestrator` drives the browser flow against a CAS portal:
it loads the login page to obtain a session cookie, posts the credentials
with that cookie replayed, and reads the auth cookie from the answer. All
protocol state lives in a :class:`SessionCookieStore` created for the call;
the transport underneath is shared and holds none.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from urllib.parse import urljoin, urlsplit

from casrelay.infra.cookies import SessionCookieStore, parse_set_cookie
from casrelay.infra.http_defaults import FORM_CONTENT_TYPE
from casrelay.infra.transport import BaseTransport, RawResponse, TransportError
from casrelay.schemas import (
    Credentials,
    LoginFailure,
    LoginOutcome,
    LoginPhase,
    LoginSuccess,
    UpstreamConfig,
)

from .page import extract_execution, is_failure_page

logger = logging.getLogger(__name__)

# redirects that turn the follow-up request into a plain GET
_REWRITE_TO_GET = frozenset({301, 302, 303})


class _LoginCancelled(Exception):
    """Raised internally when the caller's cancel event fires."""


class _InvalidRedirect(Exception):
    """Raised internally when a ``Location`` header cannot be followed."""


class CasLoginOrchestrator:
    """Runs CAS login attempts over a shared :class:`BaseTransport`.

    One instance can serve any number of concurrent :meth:`login` calls.
    """

    def __init__(
        self,
        transport: BaseTransport,
        config: UpstreamConfig | None = None,
    ) -> None:
        """Initializes the orchestrator.

        Args:
            transport: Initialized transport shared by all attempts.
            config: Portal settings. Defaults to :class:`UpstreamConfig`.
        """
        self._transport = transport
        self._cfg = config or UpstreamConfig()

    @property
    def login_url(self) -> str:
        return self._transport.resolve(self._cfg.login_path)

    @property
    def post_url(self) -> str:
        return self._transport.resolve(self._cfg.post_path or self._cfg.login_path)

    @property
    def phase_timeout(self) -> float:
        """Wall-clock budget for one handshake phase, redirects included."""
        return self._cfg.phase_timeout or self._transport.timeout

    async def login(
        self,
        username: str,
        password: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> LoginOutcome:
        """Performs the CAS handshake and returns its outcome.

        Step 1 loads the login page and captures its cookies. Step 2 posts
        the credentials with those cookies and looks for the auth cookie in
        the answer. Exactly one outcome is produced per call; failures are
        never retried.

        Args:
            username: Portal username.
            password: Portal password.
            cancel_event: Optional event; once set, the in-flight request is
                abandoned and the outcome is a ``cancelled`` failure.

        Returns:
            LoginOutcome: :class:`LoginSuccess` with the token, or a
            :class:`LoginFailure` describing what went wrong.
        """
        creds = Credentials(username=username, password=password)
        attempt = uuid.uuid4().hex[:8]
        cookies = SessionCookieStore()
        logger.info("[%s] login attempt started", attempt)

        try:
            outcome = await self._handshake(attempt, creds, cookies, cancel_event)
        except _LoginCancelled:
            outcome = LoginFailure("cancelled", "Login cancelled before completion")
        finally:
            cookies.clear()

        if isinstance(outcome, LoginSuccess):
            logger.info("[%s] login succeeded", attempt)
        else:
            logger.warning(
                "[%s] login failed: %s (%s)", attempt, outcome.kind, outcome.detail
            )
        return outcome

    async def _handshake(
        self,
        attempt: str,
        creds: Credentials,
        cookies: SessionCookieStore,
        cancel_event: asyncio.Event | None,
    ) -> LoginOutcome:
        # Phase 1: session
        try:
            chain = await self._follow(
                "GET", self.login_url, cookies, cancel_event=cancel_event
            )
        except TransportError as e:
            return self._transport_failure(attempt, "session", e)
        except _InvalidRedirect:
            return LoginFailure(
                "session_init_error",
                "Login page sent an invalid redirect",
                phase="session",
            )

        page = chain[-1]
        logger.debug(
            "[%s] login page: HTTP %d, cookies=%s", attempt, page.status, cookies.names()
        )
        if not page.is_success:
            return LoginFailure(
                "session_init_error",
                f"Login page returned HTTP {page.status}",
                phase="session",
            )
        if self._cfg.require_session_cookie and not cookies:
            return LoginFailure(
                "session_init_error",
                "Login page did not establish a session cookie",
                phase="session",
            )

        # Phase 2: credentials
        try:
            chain = await self._follow(
                "POST",
                self.post_url,
                cookies,
                headers=self._form_headers(),
                data=self._build_form(creds, page.text),
                cancel_event=cancel_event,
            )
        except TransportError as e:
            return self._transport_failure(attempt, "credentials", e)
        except _InvalidRedirect:
            return LoginFailure(
                "upstream_error",
                "Login endpoint sent an invalid redirect",
                phase="credentials",
            )

        final = chain[-1]
        logger.debug("[%s] credential response: HTTP %d", attempt, final.status)
        if final.status in self._cfg.invalid_credential_statuses or is_failure_page(
            final.text, self._cfg.failure_markers, self._cfg.failure_xpath
        ):
            return LoginFailure(
                "invalid_credentials",
                "The portal rejected the supplied credentials",
                phase="credentials",
            )
        if not final.ok:
            return LoginFailure(
                "upstream_error",
                f"Login endpoint returned HTTP {final.status}",
                phase="credentials",
            )

        token = self._find_auth_cookie(chain)
        if not token:
            return LoginFailure(
                "token_missing",
                f"No {self._cfg.auth_cookie_name} cookie in the login response",
                phase="credentials",
            )
        return LoginSuccess(token=token)

    async def _follow(
        self,
        method: str,
        url: str,
        cookies: SessionCookieStore,
        *,
        headers: dict[str, str] | None = None,
        data: dict[str, str] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[RawResponse]:
        """Sends a request and follows redirects, capturing cookies on each hop.

        301/302/303 continue as GET without a body. 307/308 after a POST are
        not followed, so credentials are never re-sent to a redirect target.
        Cookies are only captured from, and replayed to, the login host.
        The whole chain is bounded by :attr:`phase_timeout`.

        Returns:
            Every response received, the final one last.

        Raises:
            TransportError: On a network failure, or ``timeout`` once the
                phase budget is spent.
            _InvalidRedirect: If a ``Location`` header is not a usable
                http(s) URL.
        """
        chain: list[RawResponse] = []
        try:
            async with asyncio.timeout(self.phase_timeout):
                for _ in range(self._cfg.max_redirects + 1):
                    on_login_host = self._is_login_host(url)
                    req_headers = dict(headers or {})
                    if cookies and on_login_host:
                        req_headers["Cookie"] = cookies.header_value()

                    resp = await self._send(
                        method,
                        url,
                        headers=req_headers,
                        data=data,
                        cancel_event=cancel_event,
                    )
                    if on_login_host:
                        cookies.update_from_headers(resp.set_cookies)
                    chain.append(resp)

                    if not resp.is_redirect:
                        break
                    if method != "GET" and resp.status not in _REWRITE_TO_GET:
                        break
                    url = self._redirect_target(url, resp.location or "")
                    method, headers, data = "GET", None, None
        except TimeoutError as e:
            raise TransportError(
                "timeout", f"phase did not finish within {self.phase_timeout}s"
            ) from e
        return chain

    def _is_login_host(self, url: str) -> bool:
        return urlsplit(url).hostname == urlsplit(self.login_url).hostname

    @staticmethod
    def _redirect_target(base: str, location: str) -> str:
        try:
            target = urljoin(base, location)
            parts = urlsplit(target)
            usable = bool(parts.hostname) and parts.port != 0
        except ValueError as e:
            raise _InvalidRedirect from e
        if parts.scheme not in ("http", "https") or not usable:
            raise _InvalidRedirect
        return target

    async def _send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        data: dict[str, str] | None,
        cancel_event: asyncio.Event | None,
    ) -> RawResponse:
        if cancel_event is None:
            return await self._transport.send(method, url, headers=headers, data=data)
        if cancel_event.is_set():
            raise _LoginCancelled

        request = asyncio.create_task(
            self._transport.send(method, url, headers=headers, data=data)
        )
        waiter = asyncio.create_task(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {request, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
            if not request.done():
                request.cancel()

        if request in done:
            return request.result()
        # drain the abandoned request; its response or error is discarded
        await asyncio.gather(request, return_exceptions=True)
        raise _LoginCancelled

    def _build_form(self, creds: Credentials, page_text: str) -> dict[str, str]:
        form = {
            "username": creds.username,
            "password": creds.password,
            "execution": extract_execution(page_text) or self._cfg.default_execution,
        }
        for key, value in self._cfg.extra_form.items():
            form.setdefault(key, value)
        return form

    def _form_headers(self) -> dict[str, str]:
        parts = urlsplit(self.login_url)
        return {
            "Content-Type": FORM_CONTENT_TYPE,
            "Referer": self.login_url,
            "Origin": f"{parts.scheme}://{parts.netloc}",
        }

    def _find_auth_cookie(self, chain: list[RawResponse]) -> str | None:
        token: str | None = None
        for resp in chain:
            for header in resp.set_cookies:
                parsed = parse_set_cookie(header)
                if parsed and parsed[0] == self._cfg.auth_cookie_name:
                    token = parsed[1]
        return token

    @staticmethod
    def _transport_failure(
        attempt: str, phase: LoginPhase, err: TransportError
    ) -> LoginFailure:
        logger.warning("[%s] transport failure during %s phase: %s", attempt, phase, err)
        step = "load the login page" if phase == "session" else "submit credentials"
        return LoginFailure(
            "transport_error",
            f"Could not {step}: {err.kind.replace('_', ' ')}",
            phase=phase,
            transport_error=err.kind,
        )
