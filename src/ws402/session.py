"""
Streaming session: one websocket connection, its subscription setup, and
token renewal driven by the server's lifecycle events.

States::

    CONNECTING -> CONFIGURING -> STREAMING -> RENEWING_HTTP | RENEWING_INBAND -> STREAMING ... -> CLOSED

Frames are handled one at a time in arrival order. A renewal triggered by frame
N is awaited before frame N+1 is handled, and at most one renewal is in flight
at any time; reminders arriving meanwhile are dropped.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, AsyncIterator, Optional, Protocol, Union

from ws402.classifier import classify
from ws402.dispatcher import EventDispatcher, format_meta
from ws402.errors import RenewalError, TransportError
from ws402.models.events import (
    ClientOp,
    ErrorEvent,
    HelloEvent,
    LifecycleEvent,
    RenewedEvent,
    ServerOp,
)
from ws402.models.options import OutputOptions, Watchlist
from ws402.models.payment import InbandPayment
from ws402.models.schema import AuthToken, SessionDescriptor
from ws402.renewal import RenewalStrategy
from ws402.transport.websocket import CloseInfo

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    CONNECTING = "connecting"
    CONFIGURING = "configuring"
    STREAMING = "streaming"
    RENEWING_HTTP = "renewing_http"
    RENEWING_INBAND = "renewing_inband"
    CLOSED = "closed"


class Connection(Protocol):
    close_info: Optional[CloseInfo]

    @property
    def connected(self) -> bool: ...

    async def connect(self) -> None: ...

    def send(self, message: dict[str, Any]) -> None: ...

    def messages(self) -> AsyncIterator[Union[str, bytes]]: ...

    async def disconnect(self) -> None: ...


class StreamSession:
    def __init__(
        self,
        descriptor: SessionDescriptor,
        connection: Connection,
        strategy: RenewalStrategy,
        dispatcher: EventDispatcher,
        watchlist: Watchlist = Watchlist(),
        options: OutputOptions = OutputOptions(),
        renew_backoff_seconds: float = 1.0,
    ):
        self.descriptor = descriptor
        self._connection = connection
        self._strategy = strategy
        self._dispatcher = dispatcher
        self._watchlist = watchlist
        self._options = options
        self._renew_backoff_seconds = renew_backoff_seconds

        self.state = SessionState.CONNECTING
        self.token = descriptor.token
        self.client_id: Optional[str] = None
        self.expires_at: Optional[str] = None
        self.slice_seconds: Optional[float] = None
        self.watchlist_warning = False
        self.renewal_count = 0
        self.renewal_failures = 0

        self._renewal: Optional[asyncio.Task[None]] = None
        self._closed = False

    @property
    def renewing(self) -> bool:
        return self._renewal is not None and not self._renewal.done()

    async def run(self) -> CloseInfo:
        """Connect, configure and stream until the connection closes."""
        self.state = SessionState.CONNECTING
        logger.info("Connecting websocket to stream %s", self.descriptor.stream_id)
        try:
            await self._connection.connect()
        except TransportError:
            self.state = SessionState.CLOSED
            raise

        try:
            self.configure()
            async for raw in self._connection.messages():
                if self._closed:
                    break
                await self.handle_message(raw)
        finally:
            await self.close()

        info = self._connection.close_info or CloseInfo()
        if info.error:
            logger.warning("ws error %s", format_meta({"message": info.error}))
        logger.info("ws closed %s", format_meta({"code": info.code, "reason": info.reason}))
        return info

    def configure(self) -> None:
        """Send the subscription setup. Nothing is acknowledged before streaming starts."""
        self.state = SessionState.CONFIGURING
        logger.info("Setting options %s", format_meta(self._options.model_dump()))
        self._connection.send(self._options.to_message())
        if self._watchlist.accounts:
            logger.info("Setting watch accounts: count=%d", len(self._watchlist.accounts))
            self._connection.send({"op": ClientOp.SET_ACCOUNTS, "accounts": list(self._watchlist.accounts)})
        if self._watchlist.programs:
            logger.info("Setting watch programs: count=%d", len(self._watchlist.programs))
            self._connection.send({"op": ClientOp.SET_PROGRAMS, "programs": list(self._watchlist.programs)})
        if self._watchlist.empty:
            self.watchlist_warning = True
            logger.warning("No watchlists configured (WATCH_ACCOUNTS/WATCH_PROGRAMS empty)")
        self._connection.send({"op": ClientOp.GET_STATE})
        self.state = SessionState.STREAMING

    async def handle_message(self, raw: Union[str, bytes]) -> None:
        event = classify(raw)
        self._dispatcher.dispatch(event)
        if not isinstance(event, LifecycleEvent):
            return

        if isinstance(event, HelloEvent):
            self.client_id = event.client_id
            self.expires_at = event.expires_at
            self.slice_seconds = event.slice_seconds
        elif isinstance(event, RenewedEvent):
            self.expires_at = event.expires_at
            if self.state == SessionState.RENEWING_INBAND:
                self.state = SessionState.STREAMING
            logger.info("Renewal confirmed: method=%s expires_at=%s", event.method, event.expires_at)
        elif isinstance(event, ErrorEvent):
            logger.warning("Server error: %s", event.message)
        elif event.op in ServerOp.RENEWAL_TRIGGERS:
            await self.renew()

    async def renew(self) -> bool:
        """Run one renewal unless one is already in flight. Returns False when skipped or cancelled."""
        if self._closed:
            return False
        if self.renewing:
            logger.debug("Renewal already in progress; dropping reminder")
            return False

        self._renewal = asyncio.get_running_loop().create_task(self._renew(self.token))
        try:
            await self._renewal
        except asyncio.CancelledError:
            if self._closed:
                return False
            raise
        return True

    async def _renew(self, old_token: str) -> None:
        if self._strategy.method == "inband":
            self.state = SessionState.RENEWING_INBAND
        else:
            self.state = SessionState.RENEWING_HTTP
        try:
            result = await self._strategy.renew(old_token)
            if self._closed:
                logger.info("Session closed during renewal; discarding result")
                return
            self._apply_renewal(result)
            self.renewal_count += 1
        except (RenewalError, TransportError) as e:
            self.renewal_failures += 1
            logger.warning("renew error %s", format_meta({"message": str(e)}))
            if not self._closed:
                self.state = SessionState.STREAMING
            await asyncio.sleep(self._renew_backoff_seconds)

    def _apply_renewal(self, result: Union[AuthToken, InbandPayment]) -> None:
        if isinstance(result, AuthToken):
            self.token = result.token
            self.expires_at = result.expires_at
            self.slice_seconds = result.slice_seconds
            logger.info("Sending renew token")
            self._connection.send({"op": ClientOp.RENEW_TOKEN, "token": result.token})
            self.state = SessionState.STREAMING
        else:
            logger.info("Sending inband renewal payment")
            self._connection.send({
                "op": ClientOp.RENEW_INBAND,
                "paymentRequirements": result.requirement,
                "paymentPayload": result.payload,
            })
            # back to STREAMING once the server answers with `renewed`

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.state = SessionState.CLOSED
        if self._renewal is not None and not self._renewal.done():
            self._renewal.cancel()
        await self._connection.disconnect()
