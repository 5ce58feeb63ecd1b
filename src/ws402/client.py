"""
AsyncStreamClient / StreamClient — main SDK clients.
"""

import asyncio
from typing import Any, Callable, Optional

import httpx

from ws402.config import ClientConfig
from ws402.dispatcher import EventCallback, EventDispatcher
from ws402.models.schema import SessionDescriptor
from ws402.negotiator import PaymentNegotiator
from ws402.renewal import create_renewal_strategy
from ws402.session import Connection, StreamSession
from ws402.signers import EvmExactSigner, Signer
from ws402.transport.http import PaymentHttpClient
from ws402.transport.websocket import CloseInfo, WebSocketConnection

ConnectionFactory = Callable[[str], Connection]


class AsyncStreamClient:
    """Async ws402 client (primary). Manages exactly one session at a time."""

    def __init__(
        self,
        config: ClientConfig,
        signer: Optional[Signer] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        connection_factory: Optional[ConnectionFactory] = None,
    ):
        self.config = config
        self.signer = signer or EvmExactSigner(config.private_key)
        self.http = PaymentHttpClient(
            config.base_url, self.signer,
            timeout=config.http_timeout_seconds,
            transport=http_transport,
        )
        self.negotiator = PaymentNegotiator(self.http, config.schema_path)
        self.dispatcher = EventDispatcher(mode=config.tx_log_mode)
        self._connection_factory: ConnectionFactory = connection_factory or WebSocketConnection
        self.session: Optional[StreamSession] = None

    def on(self, kind: str, callback: EventCallback) -> Callable[[], None]:
        """Subscribe to classified events of one kind (``"*"`` for all)."""
        return self.dispatcher.on(kind, callback)

    async def negotiate(self) -> SessionDescriptor:
        """Pay for the stream schema. Raises NegotiationError."""
        return await self.negotiator.acquire_session()

    def open_session(self, descriptor: SessionDescriptor) -> StreamSession:
        strategy = create_renewal_strategy(
            self.config.renew_method, self.negotiator, descriptor.stream_id, self.signer,
        )
        self.session = StreamSession(
            descriptor,
            self._connection_factory(descriptor.endpoint_url),
            strategy,
            self.dispatcher,
            watchlist=self.config.watchlist,
            options=self.config.options,
            renew_backoff_seconds=self.config.renew_backoff_seconds,
        )
        return self.session

    async def run(self) -> CloseInfo:
        """Negotiate, connect and stream until the connection closes."""
        descriptor = await self.negotiate()
        session = self.open_session(descriptor)
        return await session.run()

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close()
        await self.http.close()

    async def __aenter__(self) -> "AsyncStreamClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class StreamClient:
    """Sync wrapper around AsyncStreamClient. Runs the event loop internally."""

    def __init__(self, config: ClientConfig, **kwargs: Any):
        self._async = AsyncStreamClient(config, **kwargs)
        self._loop = asyncio.new_event_loop()

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def session(self) -> Optional[StreamSession]:
        return self._async.session

    def on(self, kind: str, callback: EventCallback) -> Callable[[], None]:
        return self._async.on(kind, callback)

    def negotiate(self) -> SessionDescriptor:
        return self._run(self._async.negotiate())

    def run(self) -> CloseInfo:
        return self._run(self._async.run())

    def close(self) -> None:
        try:
            self._run(self._async.close())
        finally:
            self._loop.close()
