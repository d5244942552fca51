"""Test fixtures: real local HTTP targets served by aiohttp."""

import asyncio
import socket
from types import SimpleNamespace

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer


def make_target_app(hits: list) -> web.Application:
    """A small site: one page, one redirect, a redirect loop and a few error codes."""

    @web.middleware
    async def record_hits(request, handler):
        hits.append(request.path)
        return await handler(request)

    async def admin(request):
        return web.Response(text="ok")

    async def login(request):
        raise web.HTTPMovedPermanently(location="/new-login")

    async def new_login(request):
        return web.Response(text="welcome")

    async def chain_a(request):
        raise web.HTTPFound(location="/chain-b")

    async def chain_b(request):
        raise web.HTTPMovedPermanently(location="chain-c")

    async def chain_c(request):
        return web.Response(text="end of chain")

    async def loop(request):
        raise web.HTTPFound(location="/loop")

    async def bare_redirect(request):
        return web.Response(status=302, text="nowhere to go")

    async def secret(request):
        return web.Response(status=403, text="forbidden")

    async def boom(request):
        return web.Response(status=500, text="boom")

    async def echo(request):
        return web.json_response({
            "method": request.method,
            "user_agent": request.headers.get("User-Agent"),
            "cookie": request.headers.get("Cookie"),
            "x_token": request.headers.get("X-Token"),
        })

    async def slow(request):
        await asyncio.sleep(0.05)
        return web.Response(text="slow " + request.match_info["n"])

    app = web.Application(middlewares=[record_hits])
    app.router.add_get("/admin", admin)
    app.router.add_get("/admin.php", admin)
    app.router.add_get("/login", login)
    app.router.add_get("/new-login", new_login)
    app.router.add_get("/chain-a", chain_a)
    app.router.add_get("/chain-b", chain_b)
    app.router.add_get("/chain-c", chain_c)
    app.router.add_get("/loop", loop)
    app.router.add_get("/bare", bare_redirect)
    app.router.add_get("/secret", secret)
    app.router.add_get("/boom", boom)
    app.router.add_route("*", "/echo", echo)
    app.router.add_get("/slow/{n}", slow)
    return app


def make_catchall_app(bodies) -> web.Application:
    """Answers 200 for every path; bodies are served in turn from ``bodies``."""
    state = {"i": 0}

    async def real(request):
        return web.Response(text="the real admin page")

    async def anything(request):
        body = bodies[state["i"] % len(bodies)]
        state["i"] += 1
        return web.Response(text=body)

    app = web.Application()
    app.router.add_get("/real", real)
    app.router.add_get("/{tail:.*}", anything)
    return app


@pytest_asyncio.fixture
async def serve():
    """Factory: start an aiohttp app on a free port and return its base URL."""
    servers = []

    async def _serve(app: web.Application) -> str:
        srv = TestServer(app)
        await srv.start_server()
        servers.append(srv)
        return f"http://{srv.host}:{srv.port}"

    yield _serve
    for srv in servers:
        await srv.close()


@pytest_asyncio.fixture
async def target(serve):
    hits = []
    base = await serve(make_target_app(hits))
    return SimpleNamespace(base=base, hits=hits)


@pytest.fixture
def dead_base() -> str:
    """Base URL on a port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    return f"http://127.0.0.1:{port}"
