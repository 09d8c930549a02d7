"""Tier 2 fixtures: local aiohttp JSON-RPC node stub."""

from __future__ import annotations

from typing import Any

import pytest
from aiohttp import web

from keep_rewards.chain.provider import Web3LedgerProvider

STUB_PORT = 9545
STUB_URL = f"http://127.0.0.1:{STUB_PORT}"


class JsonRpcStub:
    """Answers JSON-RPC requests from a method -> result table.

    A result may be a callable taking the request params. Methods listed in
    `errors` answer with that JSON-RPC error object instead.
    """

    def __init__(self) -> None:
        self.results: dict[str, Any] = {
            "eth_chainId": "0x44d",
            "net_version": "1101",
            "eth_blockNumber": "0x3e8",
        }
        self.errors: dict[str, dict] = {}
        self.requests: list[tuple[str, list]] = []
        self.http_status = 200

    async def handle(self, request: web.Request) -> web.Response:
        if self.http_status != 200:
            return web.Response(status=self.http_status, text="upstream unavailable")
        body = await request.json()
        if isinstance(body, list):
            return web.json_response([self._reply(r) for r in body])
        return web.json_response(self._reply(body))

    def _reply(self, req: dict) -> dict:
        method = req["method"]
        params = req.get("params", [])
        self.requests.append((method, params))
        if method in self.errors:
            return {"jsonrpc": "2.0", "id": req["id"], "error": self.errors[method]}
        if method not in self.results:
            return {
                "jsonrpc": "2.0", "id": req["id"],
                "error": {"code": -32601, "message": f"method {method} not found"},
            }
        result = self.results[method]
        if callable(result):
            result = result(params)
        return {"jsonrpc": "2.0", "id": req["id"], "result": result}

    def params_of(self, method: str) -> list[list]:
        return [p for m, p in self.requests if m == method]


@pytest.fixture
async def rpc_stub():
    """Running JSON-RPC stub on localhost. Yields the JsonRpcStub."""
    stub = JsonRpcStub()
    app = web.Application()
    app.router.add_post("/", stub.handle)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", STUB_PORT)
    await site.start()
    yield stub
    await runner.cleanup()


@pytest.fixture
async def provider(rpc_stub):
    p = Web3LedgerProvider(STUB_URL, request_timeout=5)
    yield p
    await p.close()
