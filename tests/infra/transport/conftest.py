from __future__ import annotations

import asyncio

import aiohttp
import aiohttp.web
import pytest_asyncio


@pytest_asyncio.fixture
async def test_server(aiohttp_server):
    async def handler_ok(request):
        return aiohttp.web.Response(text="hello", status=200)

    async def handler_form(request):
        data = await request.post()
        return aiohttp.web.json_response(
            {"received": dict(data), "content_type": request.content_type}
        )

    async def handler_set_cookies(request):
        resp = aiohttp.web.Response(text="cookie!")
        resp.set_cookie("token", "abc123", path="/", httponly=True)
        resp.set_cookie("lang", "en", max_age=60)
        return resp

    async def handler_redirect(request):
        raise aiohttp.web.HTTPFound("/ok")

    async def handler_echo_headers(request):
        return aiohttp.web.json_response({"headers": dict(request.headers)})

    async def handler_echo_cookies(request):
        return aiohttp.web.json_response({"cookies": dict(request.cookies)})

    async def handler_slow(request):
        await asyncio.sleep(3)
        return aiohttp.web.Response(text="late")

    async def handler_gzip(request):
        resp = aiohttp.web.Response(text="compressed " * 100)
        resp.enable_compression(aiohttp.web.ContentCoding.gzip)
        return resp

    app = aiohttp.web.Application()
    app.router.add_get("/ok", handler_ok)
    app.router.add_post("/form", handler_form)
    app.router.add_get("/set-cookies", handler_set_cookies)
    app.router.add_get("/redirect", handler_redirect)
    app.router.add_get("/echo-headers", handler_echo_headers)
    app.router.add_get("/echo-cookies", handler_echo_cookies)
    app.router.add_get("/slow", handler_slow)
    app.router.add_get("/gzip", handler_gzip)

    server = await aiohttp_server(app)
    return server


@pytest_asyncio.fixture
async def dropping_server():
    """A raw TCP server that reads the request and hangs up without answering."""

    async def handle(reader, writer):
        try:
            await reader.readuntil(b"\r\n\r\n")
        except (asyncio.IncompleteReadError, asyncio.LimitOverrunError, ConnectionError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    yield f"http://127.0.0.1:{port}/"
    server.close()
    await server.wait_closed()
