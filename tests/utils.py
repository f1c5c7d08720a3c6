from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field

import aiohttp.web

LOGIN_PATH = "/cas/login?service=http%3a%2f%2fservice.test%2fhome"

LOGIN_PAGE = """<html><body>
<form id="fm1" method="post">
  <input type="text" name="username"/>
  <input type="password" name="password"/>
  <input type="hidden" name="execution" value="{execution}"/>
  <input type="hidden" name="_eventId" value="submit"/>
</form>
</body></html>"""

FAILURE_PAGE = """<html><body>
<div id="msg" class="errors"><span>Invalid credentials.</span></div>
</body></html>"""


@dataclass
class SimulatedCas:
    """Behaviour switches and request log for the simulated CAS portal."""

    users: dict[str, str] = field(
        default_factory=lambda: {"alice": "correct-pw", "bob": "bob-pw"}
    )
    get_status: int = 200
    set_session_cookie: bool = True
    execution: str = "e1s1-test"
    reject_status: int = 200
    reject_page: str = FAILURE_PAGE
    accept_status: int = 200
    accept_sets_token: bool = True
    redirect_to_service: bool = False
    redirect_location: str | None = None
    get_delay: float = 0.0
    post_delay: float = 0.0
    home_delay: float = 0.0
    issued_sessions: set[str] = field(default_factory=set)
    used_sessions: set[str] = field(default_factory=set)
    gets: int = 0
    posts: list[dict] = field(default_factory=list)
    _counter: itertools.count = field(default_factory=itertools.count)

    def token_for(self, username: str, session: str) -> str:
        return f"tok-{username}-{session}"


def build_cas_app(sim: SimulatedCas) -> aiohttp.web.Application:
    async def login_page(request):
        sim.gets += 1
        if sim.get_delay:
            await asyncio.sleep(sim.get_delay)
        if sim.get_status != 200:
            return aiohttp.web.Response(text="unavailable", status=sim.get_status)

        resp = aiohttp.web.Response(
            text=LOGIN_PAGE.format(execution=sim.execution), content_type="text/html"
        )
        if sim.set_session_cookie:
            session = f"sess{next(sim._counter)}"
            sim.issued_sessions.add(session)
            resp.set_cookie("SESSION", session, path="/cas", httponly=True, secure=False)
            resp.set_cookie("TRACKER", "t", max_age=3600)
        return resp

    async def submit(request):
        form = await request.post()
        cookie_header = request.headers.get("Cookie", "")
        session = request.cookies.get("SESSION", "")
        sim.posts.append(
            {
                "form": dict(form),
                "cookie_header": cookie_header,
                "session": session,
                "content_type": request.content_type,
                "referer": request.headers.get("Referer"),
            }
        )
        if sim.post_delay:
            await asyncio.sleep(sim.post_delay)

        if sim.set_session_cookie:
            if session not in sim.issued_sessions or session in sim.used_sessions:
                return aiohttp.web.Response(text="bad session", status=400)
            sim.used_sessions.add(session)

        username = str(form.get("username", ""))
        if sim.users.get(username) != form.get("password"):
            return aiohttp.web.Response(
                text=sim.reject_page, status=sim.reject_status, content_type="text/html"
            )

        token = sim.token_for(username, session)
        if sim.redirect_location is not None:
            resp = aiohttp.web.Response(status=302)
            resp.headers["Location"] = sim.redirect_location
            return resp
        if sim.redirect_to_service:
            resp = aiohttp.web.Response(status=302)
            resp.headers["Location"] = f"/home?ticket=ST-{username}"
            resp.set_cookie("TGC", "granting-ticket", path="/cas")
            return resp

        resp = aiohttp.web.Response(text="welcome", status=sim.accept_status)
        if sim.accept_sets_token:
            resp.set_cookie("MOD_AUTH_CAS", token, path="/", httponly=True)
        return resp

    async def service_home(request):
        if sim.home_delay:
            await asyncio.sleep(sim.home_delay)
        ticket = request.query.get("ticket", "")
        resp = aiohttp.web.Response(text="home")
        if ticket.startswith("ST-"):
            username = ticket[3:]
            session = request.cookies.get("SESSION", "")
            resp.set_cookie("MOD_AUTH_CAS", sim.token_for(username, session), path="/")
        return resp

    app = aiohttp.web.Application()
    app.router.add_get("/cas/login", login_page)
    app.router.add_post("/cas/login", submit)
    app.router.add_get("/home", service_home)
    return app
