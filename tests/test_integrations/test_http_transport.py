"""
Tests for conductor_harness.integrations.conductor.http
=========================================================

These tests verify HttpConductorTransport against an in-memory conductor
served through ``httpx.MockTransport``:
    - start() loads the instance table (agent ids)
    - call_raw() sends JSON-RPC "call" requests and returns raw text
    - JSON-RPC errors become CallError, HTTP failures ConductorError
    - The NDJSON signal stream fires settle callbacks

No network access: every request is answered by a handler function.
"""

import asyncio
import json

import httpx
import pytest

from conductor_harness.core.config import HttpTransportConfig
from conductor_harness.core.exceptions import CallError, ConductorError
from conductor_harness.integrations.conductor.http import HttpConductorTransport

URL = "http://conductor.test:3000"
ALICE = "alice::app-spec"


class FakeConductor:
    """Answers JSON-RPC on "/" and streams signals on "/signals"."""

    def __init__(self, signals: bytes = b"", call_result=None, call_error=None) -> None:
        self.signals = signals
        self.call_result = {"Ok": "QmAddress"} if call_result is None else call_result
        self.call_error = call_error
        self.rpc_requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and request.url.path == "/signals":
            return httpx.Response(200, content=self.signals)

        payload = json.loads(request.content)
        self.rpc_requests.append(payload)
        if payload["method"] == "info/instances":
            result = [{"id": ALICE, "agent": "HcSalice"}, {"id": "bob::app-spec"}]
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})
        if self.call_error is not None:
            return httpx.Response(
                200, json={"jsonrpc": "2.0", "id": payload["id"], "error": self.call_error}
            )
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": payload["id"], "result": self.call_result}
        )


def _transport(conductor_config, handler) -> HttpConductorTransport:
    return HttpConductorTransport(
        conductor_config,
        URL,
        http_config=HttpTransportConfig(reconnect_delay_seconds=0.01),
        transport=httpx.MockTransport(handler),
    )


# =============================================================================
# Test: start() and the instance table
# =============================================================================
class TestStart:

    async def test_start_loads_agent_ids(self, conductor_config) -> None:
        fake = FakeConductor()
        transport = _transport(conductor_config, fake)
        await transport.start()
        try:
            assert transport.agent_id(ALICE) == "HcSalice"
            assert fake.rpc_requests[0]["method"] == "info/instances"
            assert fake.rpc_requests[0]["jsonrpc"] == "2.0"
        finally:
            await transport.stop()

    async def test_instance_without_agent_is_skipped(self, conductor_config) -> None:
        """An instance the conductor lists without an agent address gets no agent id."""
        transport = _transport(conductor_config, FakeConductor())
        await transport.start()
        try:
            with pytest.raises(ConductorError) as exc_info:
                transport.agent_id("bob::app-spec")
            assert exc_info.value.error_code == "UNKNOWN_INSTANCE"
        finally:
            await transport.stop()

    async def test_unknown_instance(self, conductor_config) -> None:
        transport = _transport(conductor_config, FakeConductor())
        await transport.start()
        try:
            with pytest.raises(ConductorError) as exc_info:
                transport.agent_id("zed::app-spec")
            assert exc_info.value.error_code == "UNKNOWN_INSTANCE"
        finally:
            await transport.stop()

    async def test_unreachable_conductor(self, conductor_config) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = _transport(conductor_config, refuse)
        with pytest.raises(ConductorError) as exc_info:
            await transport.start()
        assert exc_info.value.error_code == "TRANSPORT_ERROR"
        await transport.stop()

    async def test_rpc_error_on_start(self, conductor_config) -> None:
        def reject(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"message": "nope"}})

        transport = _transport(conductor_config, reject)
        with pytest.raises(ConductorError) as exc_info:
            await transport.start()
        assert exc_info.value.error_code == "RPC_ERROR"
        await transport.stop()


# =============================================================================
# Test: call_raw()
# =============================================================================
class TestCallRaw:

    async def test_call_sends_json_rpc(self, conductor_config) -> None:
        fake = FakeConductor()
        transport = _transport(conductor_config, fake)
        await transport.start()
        try:
            raw = await transport.call_raw(
                ALICE, "entries", "main", "commit_entry", json.dumps({"entry": {"a": 1}})
            )
        finally:
            await transport.stop()

        assert json.loads(raw) == {"Ok": "QmAddress"}
        call = fake.rpc_requests[-1]
        assert call["method"] == "call"
        assert call["params"] == {
            "instance_id": ALICE,
            "zome": "entries",
            "capability": "main",
            "function": "commit_entry",
            "args": {"entry": {"a": 1}},
        }

    async def test_string_result_is_returned_verbatim(self, conductor_config) -> None:
        transport = _transport(conductor_config, FakeConductor(call_result="plain text"))
        await transport.start()
        try:
            assert await transport.call_raw(ALICE, "z", "main", "f", "{}") == "plain text"
        finally:
            await transport.stop()

    async def test_rpc_error_becomes_call_error(self, conductor_config) -> None:
        fake = FakeConductor(call_error={"code": -32000, "message": "zome panicked"})
        transport = _transport(conductor_config, fake)
        await transport.start()
        try:
            with pytest.raises(CallError) as exc_info:
                await transport.call_raw(ALICE, "entries", "main", "commit_entry", "{}")
        finally:
            await transport.stop()
        assert exc_info.value.message == "zome panicked"
        assert exc_info.value.instance_id == ALICE
        assert exc_info.value.details["rpc_error"]["code"] == -32000

    async def test_http_error_status(self, conductor_config) -> None:
        fake = FakeConductor()

        def flaky(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content) if request.method == "POST" else {}
            if payload.get("method") == "call":
                return httpx.Response(500, text="internal error")
            return fake(request)

        transport = _transport(conductor_config, flaky)
        await transport.start()
        try:
            with pytest.raises(ConductorError) as exc_info:
                await transport.call_raw(ALICE, "z", "main", "f", "{}")
        finally:
            await transport.stop()
        assert exc_info.value.error_code == "TRANSPORT_ERROR"

    async def test_malformed_body(self, conductor_config) -> None:
        fake = FakeConductor()

        def garbled(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content) if request.method == "POST" else {}
            if payload.get("method") == "call":
                return httpx.Response(200, text="<html>")
            return fake(request)

        transport = _transport(conductor_config, garbled)
        await transport.start()
        try:
            with pytest.raises(ConductorError) as exc_info:
                await transport.call_raw(ALICE, "z", "main", "f", "{}")
        finally:
            await transport.stop()
        assert exc_info.value.error_code == "MALFORMED_RESPONSE"


# =============================================================================
# Test: Signal Stream
# =============================================================================
class TestSignalStream:

    async def test_settled_signal_fires_callbacks(self, conductor_config) -> None:
        fake = FakeConductor(signals=b'{"signal_type": "settled"}\n')
        transport = _transport(conductor_config, fake)
        settled = asyncio.Event()
        transport.register_callback(settled.set)

        await transport.start()
        try:
            await asyncio.wait_for(settled.wait(), timeout=1.0)
        finally:
            await transport.stop()
        assert transport.pending_callbacks == 0

    async def test_other_signals_are_ignored(self, conductor_config) -> None:
        fake = FakeConductor(signals=b'{"signal_type": "trace"}\nnot json\n\n')
        transport = _transport(conductor_config, fake)
        transport.register_callback(lambda: None)

        await transport.start()
        try:
            await asyncio.sleep(0.05)
            assert transport.pending_callbacks == 1
        finally:
            await transport.stop()

    async def test_stream_errors_are_retried(self, conductor_config) -> None:
        fake = FakeConductor(signals=b'{"signal_type": "settled"}\n')
        attempts = {"signals": 0}

        def unstable(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                attempts["signals"] += 1
                if attempts["signals"] == 1:
                    return httpx.Response(503)
            return fake(request)

        transport = _transport(conductor_config, unstable)
        settled = asyncio.Event()
        transport.register_callback(settled.set)
        await transport.start()
        try:
            await asyncio.wait_for(settled.wait(), timeout=1.0)
        finally:
            await transport.stop()
        assert attempts["signals"] >= 2
