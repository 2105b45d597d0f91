"""JSON-RPC network client built on ``httpx.AsyncClient``.

Implements :class:`mintforge.bridge.protocols.NetworkClient` over the
ledger's JSON-RPC 2.0 endpoint.  Binary payloads (signed transactions,
account data) travel base64-encoded.  A signed transaction is sent in the
registry program's canonical JSON encoding
(:meth:`SignedTransaction.serialize`), which only a node running that
program's runtime accepts; it is not a native cluster transaction.
"""

from __future__ import annotations

import asyncio
import base64
import itertools
import logging
from typing import Any

import httpx

from mintforge.core.errors import MintforgeError
from mintforge.models.transactions import ReferencePoint, SignedTransaction

logger = logging.getLogger(__name__)

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


class RpcError(MintforgeError):
    """The endpoint answered with a JSON-RPC error object."""

    def __init__(self, message: str, *, code: int | None = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class RpcTransportError(RpcError):
    """The request never produced a usable JSON-RPC response."""


class TransactionRejected(RpcError):
    """The ledger refused the transaction or recorded it as failed."""


def _reached(status: str | None, commitment: str) -> bool:
    if status not in COMMITMENT_LEVELS:
        return False
    return COMMITMENT_LEVELS.index(status) >= COMMITMENT_LEVELS.index(commitment)


class RpcNetworkClient:
    """Async ledger client.

    Parameters
    ----------
    url:
        JSON-RPC endpoint.
    commitment:
        Confirmation level treated as final: ``processed``, ``confirmed``
        or ``finalized``.
    poll_interval:
        Seconds between signature status polls while confirming.
    request_timeout:
        Per-request HTTP timeout in seconds.
    transport:
        Optional custom transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        url: str,
        *,
        commitment: str = "confirmed",
        poll_interval: float = 0.5,
        request_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if commitment not in COMMITMENT_LEVELS:
            raise ValueError(f"Unknown commitment {commitment!r}")
        self.url = url
        self.commitment = commitment
        self.poll_interval = poll_interval
        self._ids = itertools.count(1)
        self._client = httpx.AsyncClient(
            timeout=request_timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RpcNetworkClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        """Send one JSON-RPC request and return its ``result``."""
        request_id = next(self._ids)
        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or []}
        logger.debug("RPC %s #%d", method, request_id)
        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            raise RpcTransportError(f"{method} failed: {exc}") from exc
        if response.status_code >= 400:
            raise RpcTransportError(
                f"{method} returned HTTP {response.status_code}",
                code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise RpcTransportError(f"{method} returned a non-JSON body") from exc
        error = body.get("error")
        if error:
            raise RpcError(
                f"{method}: {error.get('message', 'unknown error')}",
                code=error.get("code"),
                data=error.get("data"),
            )
        return body.get("result")

    # ------------------------------------------------------------------
    # NetworkClient
    # ------------------------------------------------------------------

    async def get_reference_point(self) -> ReferencePoint:
        result = await self.call("getLatestBlockhash", [{"commitment": self.commitment}])
        value = result["value"]
        return ReferencePoint(
            blockhash=value["blockhash"],
            last_valid_height=value.get("lastValidBlockHeight"),
        )

    async def submit(self, transaction: SignedTransaction) -> str:
        encoded = base64.b64encode(transaction.serialize()).decode("ascii")
        try:
            signature = await self.call(
                "sendTransaction",
                [encoded, {"encoding": "base64", "preflightCommitment": self.commitment}],
            )
        except RpcTransportError:
            raise
        except RpcError as exc:
            raise TransactionRejected(str(exc), code=exc.code, data=exc.data) from exc
        if signature != transaction.signature:
            logger.warning(
                "Endpoint returned signature %s for transaction %s",
                signature,
                transaction.signature,
            )
        return signature

    async def confirm(self, signature: str, timeout: float) -> bool:
        """Poll the signature status until it reaches the commitment level."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            result = await self.call(
                "getSignatureStatuses", [[signature], {"searchTransactionHistory": False}]
            )
            status = (result.get("value") or [None])[0]
            if status is not None:
                if status.get("err") is not None:
                    raise TransactionRejected(
                        f"Transaction {signature} failed: {status['err']}", data=status["err"]
                    )
                if _reached(status.get("confirmationStatus"), self.commitment):
                    return True
            if loop.time() + self.poll_interval > deadline:
                return False
            await asyncio.sleep(self.poll_interval)

    async def get_account_bytes(self, address: str) -> bytes | None:
        result = await self.call(
            "getAccountInfo", [address, {"encoding": "base64", "commitment": self.commitment}]
        )
        value = result.get("value") if result else None
        if value is None:
            return None
        data, encoding = value["data"]
        if encoding != "base64":
            raise RpcError(f"getAccountInfo returned {encoding!r} data")
        return base64.b64decode(data)

    async def lookup_signature(self, signature: str) -> bool | None:
        result = await self.call(
            "getTransaction",
            [signature, {"encoding": "json", "commitment": self.commitment}],
        )
        if result is None:
            return None
        meta = result.get("meta") or {}
        return meta.get("err") is None
