import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as NodeServer

from nodecheck.errors import ProtocolError, TransportError
from nodecheck.rpc_client import RPCClient


def rpc_app(responses, received=None, status=200, delay=0):
    """Serve canned JSON-RPC responses keyed by method name."""

    async def handler(request):
        payload = await request.json()
        if received is not None:
            received.append(payload)
        if delay:
            await asyncio.sleep(delay)
        response = responses[payload["method"]]
        if isinstance(response, bytes):
            return web.Response(
                body=response,
                status=status,
                content_type="application/json",
            )
        if isinstance(response, str):
            return web.Response(text=response, status=status)
        return web.json_response(
            {"jsonrpc": "2.0", "id": payload["id"]} | response,
            status=status,
        )

    app = web.Application()
    app.router.add_post("/", handler)
    return app


def call(app, method, timeout=1.0):
    async def run():
        async with NodeServer(app) as server:
            async with RPCClient(str(server.make_url("/")), timeout=timeout) as client:
                return await getattr(client, method)()

    return asyncio.run(run())


def test_block_number_is_decoded():
    received = []
    app = rpc_app({"eth_blockNumber": {"result": "0x1b4"}}, received)

    assert call(app, "get_latest_block_number") == 436
    assert received == [
        {"jsonrpc": "2.0", "method": "eth_blockNumber", "params": [], "id": 1},
    ]


def test_chain_id_is_decoded():
    app = rpc_app({"eth_chainId": {"result": "0xAA36A7"}})
    assert call(app, "get_chain_id") == 11155111


def test_request_ids_increase():
    received = []
    app = rpc_app(
        {"eth_blockNumber": {"result": "0x1"}, "eth_chainId": {"result": "0x1"}},
        received,
    )

    async def run():
        async with NodeServer(app) as server:
            async with RPCClient(str(server.make_url("/"))) as client:
                await client.get_latest_block_number()
                await client.get_chain_id()

    asyncio.run(run())
    assert [payload["id"] for payload in received] == [1, 2]


def test_error_object_is_a_protocol_error_with_message():
    app = rpc_app(
        {"eth_blockNumber": {"error": {"code": -32000, "message": "still syncing"}}},
    )

    with pytest.raises(ProtocolError) as exc_info:
        call(app, "get_latest_block_number")

    assert not isinstance(exc_info.value, TransportError)
    assert exc_info.value.rpc_message == "still syncing"
    assert exc_info.value.method == "eth_blockNumber"
    assert "still syncing" in str(exc_info.value)


def test_malformed_hex_is_a_protocol_error():
    app = rpc_app({"eth_blockNumber": {"result": "notahex"}})
    with pytest.raises(ProtocolError, match="Invalid hex result"):
        call(app, "get_latest_block_number")


@pytest.mark.parametrize("result", ["0x" + "f" * 65, "0x" + "f" * 4000])
def test_oversized_hex_is_a_protocol_error(result):
    app = rpc_app({"eth_blockNumber": {"result": result}})
    with pytest.raises(ProtocolError, match="Invalid hex result"):
        call(app, "get_latest_block_number")


@pytest.mark.parametrize("result", [16, 1.0, True, ["0x1"], {"value": "0x1"}])
def test_non_string_result_is_a_protocol_error(result):
    app = rpc_app({"eth_chainId": {"result": result}})
    with pytest.raises(ProtocolError, match="Invalid hex result"):
        call(app, "get_chain_id")


@pytest.mark.parametrize("response", [{}, {"result": None}])
def test_absent_result_is_a_protocol_error(response):
    app = rpc_app({"eth_chainId": response})
    with pytest.raises(ProtocolError, match="No result"):
        call(app, "get_chain_id")


@pytest.mark.parametrize("body", ["not json", "[1, 2]"])
def test_body_that_is_not_a_json_object_is_a_protocol_error(body):
    app = rpc_app({"eth_chainId": body})
    with pytest.raises(ProtocolError):
        call(app, "get_chain_id")


def test_body_that_is_not_utf8_is_a_protocol_error():
    body = b'{"jsonrpc": "2.0", "id": 1, "result": "0x1\xff"}'
    app = rpc_app({"eth_blockNumber": body})
    with pytest.raises(ProtocolError, match="non-JSON body") as exc_info:
        call(app, "get_latest_block_number")

    assert not isinstance(exc_info.value, TransportError)


def test_http_error_status_is_a_transport_error():
    app = rpc_app({"eth_blockNumber": {"result": "0x1"}}, status=503)
    with pytest.raises(TransportError, match="HTTP status 503"):
        call(app, "get_latest_block_number")


def test_timeout_is_a_transport_error():
    app = rpc_app({"eth_blockNumber": {"result": "0x1"}}, delay=0.5)
    with pytest.raises(TransportError, match="eth_blockNumber"):
        call(app, "get_latest_block_number", timeout=0.05)


def test_connection_refused_is_a_transport_error():
    async def run():
        async with RPCClient("http://127.0.0.1:1/", timeout=1) as client:
            await client.get_latest_block_number()

    with pytest.raises(TransportError):
        asyncio.run(run())


def test_close_is_idempotent():
    async def run():
        client = RPCClient("http://127.0.0.1:8545")
        await client.close()
        await client.close()
        return client.session

    assert asyncio.run(run()) is None
