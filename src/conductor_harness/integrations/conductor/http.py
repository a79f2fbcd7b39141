"""
conductor_harness.integrations.conductor.http - Attached Conductor over HTTP
==============================================================================

Talks to a conductor that something else already spawned and that listens
on a network endpoint. Two channels are used:

    POST {rpc_path}      JSON-RPC 2.0 requests ("info/instances", "call")
    GET  {signal_path}   long-lived NDJSON stream of conductor signals

Stopping the transport closes the connection. It never kills the
conductor process; that belongs to whoever spawned it.
"""

from __future__ import annotations

import asyncio
import itertools
import json
from typing import Any, Optional

import httpx

from conductor_harness.core.config import HttpTransportConfig
from conductor_harness.core.exceptions import CallError, ConductorError
from conductor_harness.core.models import ConductorConfig
from conductor_harness.integrations.conductor.base import ConductorTransport


class HttpConductorTransport(ConductorTransport):
    """JSON-RPC client plus signal listener for one attached conductor.

    Example:
        transport = HttpConductorTransport(config, "http://0.0.0.0:3000")
        await transport.start()
        raw = await transport.call_raw("alice::app", "blog", "main", "get_post", "{}")
        await transport.stop()
    """

    def __init__(
        self,
        config: ConductorConfig,
        url: str,
        http_config: Optional[HttpTransportConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(config)
        self.url = url.rstrip("/")
        self._http_config = http_config or HttpTransportConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._listener: Optional[asyncio.Task[None]] = None
        self._agents: dict[str, str] = {}
        self._ids = itertools.count(1)
        self._logger = self._logger.bind(impl="http", url=self.url)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.url,
                timeout=httpx.Timeout(self._http_config.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Load the instance table and open the signal stream."""
        await self._ensure_client()
        instances = await self._rpc("info/instances", {})
        self._agents = {}
        for item in instances or []:
            if not isinstance(item, dict) or "id" not in item:
                continue
            if not item.get("agent"):
                self._logger.warning("instance_without_agent", instance_id=item["id"])
                continue
            self._agents[item["id"]] = item["agent"]
        self._listener = asyncio.get_running_loop().create_task(self._listen())
        self._logger.info("conductor_attached", instances=len(self._agents))

    async def stop(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None and not listener.done():
            listener.cancel()
            await asyncio.gather(listener, return_exceptions=True)
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
        self._logger.info("conductor_detached")

    # =========================================================================
    # Calls
    # =========================================================================

    async def call_raw(
        self,
        instance_id: str,
        zome: str,
        capability: str,
        function: str,
        params_json: str,
    ) -> str:
        try:
            result = await self._rpc(
                "call",
                {
                    "instance_id": instance_id,
                    "zome": zome,
                    "capability": capability,
                    "function": function,
                    "args": json.loads(params_json) if params_json else {},
                },
            )
        except _RpcFailure as failure:
            raise CallError(
                message=failure.message,
                conductor_name=self.name,
                instance_id=instance_id,
                zome=zome,
                function=function,
                details={"rpc_error": failure.error},
            ) from None

        if isinstance(result, str):
            return result
        return json.dumps(result)

    def agent_id(self, instance_id: str) -> str:
        try:
            return self._agents[instance_id]
        except KeyError:
            raise ConductorError(
                message=f"Conductor '{self.name}' reported no instance '{instance_id}'",
                conductor_name=self.name,
                error_code="UNKNOWN_INSTANCE",
                details={"instance_id": instance_id, "url": self.url},
            ) from None

    async def _rpc(self, method: str, params: dict[str, Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        client = await self._ensure_client()
        try:
            response = await client.post(self._http_config.rpc_path, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise ConductorError(
                message=f"JSON-RPC '{method}' to {self.url} failed: {e}",
                conductor_name=self.name,
                error_code="TRANSPORT_ERROR",
                details={"method": method, "url": self.url},
            ) from e
        except ValueError as e:
            raise ConductorError(
                message=f"JSON-RPC '{method}' returned a body that is not JSON",
                conductor_name=self.name,
                error_code="MALFORMED_RESPONSE",
                details={"method": method, "url": self.url},
            ) from e

        if isinstance(body, dict) and body.get("error") is not None:
            error = body["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            if method == "call":
                raise _RpcFailure(message, error)
            raise ConductorError(
                message=f"JSON-RPC '{method}' failed: {message}",
                conductor_name=self.name,
                error_code="RPC_ERROR",
                details={"method": method, "rpc_error": error},
            )
        return body.get("result") if isinstance(body, dict) else body

    # =========================================================================
    # Signal Stream
    # =========================================================================

    async def _listen(self) -> None:
        """Read signals until cancelled, reconnecting whenever the stream ends."""
        while True:
            try:
                client = await self._ensure_client()
                async with client.stream(
                    "GET", self._http_config.signal_path, timeout=None
                ) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        if line.strip():
                            self._handle_signal(line)
            except httpx.HTTPError as e:
                self._logger.warning("signal_stream_error", error=str(e))
            await asyncio.sleep(self._http_config.reconnect_delay_seconds)

    def _handle_signal(self, line: str) -> None:
        try:
            signal = json.loads(line)
        except json.JSONDecodeError:
            self._logger.warning("signal_not_json", line=line[:200])
            return
        if isinstance(signal, dict) and signal.get("signal_type") == self._http_config.settled_signal_type:
            self._notify_settled()


class _RpcFailure(Exception):
    def __init__(self, message: str, error: Any) -> None:
        super().__init__(message)
        self.message = message
        self.error = error
