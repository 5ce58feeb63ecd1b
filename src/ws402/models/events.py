"""
Websocket message models: outbound control ops and the closed set of inbound events.
"""

from typing import Any, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, Field


class ClientOp:
    SET_ACCOUNTS = "setAccounts"
    SET_PROGRAMS = "setPrograms"
    SET_OPTIONS = "setOptions"
    GET_STATE = "getState"
    RENEW_TOKEN = "renew_token"
    RENEW_INBAND = "renew_inband"


class ServerOp:
    HELLO = "hello"
    RENEWAL_REMINDER = "renewal_reminder"
    PAYMENT_REQUIRED = "payment_required"
    RENEWED = "renewed"
    ERROR = "error"

    ALL = frozenset({HELLO, RENEWAL_REMINDER, PAYMENT_REQUIRED, RENEWED, ERROR})
    # Ops that ask the client to renew its token
    RENEWAL_TRIGGERS = frozenset({RENEWAL_REMINDER, PAYMENT_REQUIRED})


class EventKind:
    STATUS = "status"
    TRANSACTION = "transaction"
    ACCOUNT = "account"
    SLOT = "slot"
    TICKER = "ticker"
    LEADERBOARD = "leaderboard"
    LIFECYCLE = "lifecycle"
    UNRECOGNIZED = "unrecognized"


class WireModel(BaseModel):
    model_config = {"populate_by_name": True, "extra": "allow"}


# --- data events ---


class StatusEvent(WireModel):
    kind: ClassVar[str] = EventKind.STATUS

    type: Literal["status"] = "status"
    now: str
    client_id: Optional[str] = Field(default=None, alias="clientId")
    grpc_connected: Optional[bool] = Field(default=None, alias="grpcConnected")
    node_healthy: Optional[bool] = Field(default=None, alias="nodeHealthy")
    processed_head_slot: Optional[int] = Field(default=None, alias="processedHeadSlot")
    confirmed_head_slot: Optional[int] = Field(default=None, alias="confirmedHeadSlot")
    watched_accounts: Optional[int] = Field(default=None, alias="watchedAccounts")
    watched_mints: Optional[int] = Field(default=None, alias="watchedMints")


class NativeTransfer(WireModel):
    from_user_account: Optional[str] = Field(default=None, alias="fromUserAccount")
    to_user_account: Optional[str] = Field(default=None, alias="toUserAccount")
    amount: Optional[float] = None


class TokenTransfer(WireModel):
    from_token_account: Optional[str] = Field(default=None, alias="fromTokenAccount")
    to_token_account: Optional[str] = Field(default=None, alias="toTokenAccount")
    from_user_account: Optional[str] = Field(default=None, alias="fromUserAccount")
    to_user_account: Optional[str] = Field(default=None, alias="toUserAccount")
    token_amount: Optional[float] = Field(default=None, alias="tokenAmount")
    mint: Optional[str] = None
    token_standard: Optional[str] = Field(default=None, alias="tokenStandard")


class TokenBalanceChange(WireModel):
    """Per-account token delta inside an enhanced transaction's accountData."""
    user_account: Optional[str] = Field(default=None, alias="userAccount")
    token_account: Optional[str] = Field(default=None, alias="tokenAccount")
    raw_token_amount: Optional[dict[str, Any]] = Field(default=None, alias="rawTokenAmount")
    mint: Optional[str] = None


class AccountData(WireModel):
    account: Optional[str] = None
    native_balance_change: Optional[float] = Field(default=None, alias="nativeBalanceChange")
    token_balance_changes: list[TokenBalanceChange] = Field(default_factory=list, alias="tokenBalanceChanges")


class RawTokenBalanceChange(WireModel):
    """Pre/post token balance delta carried by raw transactions."""
    account: Optional[str] = None
    mint: Optional[str] = None
    owner: Optional[str] = None
    decimals: Optional[int] = None
    pre_amount: Optional[str] = Field(default=None, alias="preAmount")
    pre_amount_ui: Optional[str] = Field(default=None, alias="preAmountUi")
    post_amount: Optional[str] = Field(default=None, alias="postAmount")
    post_amount_ui: Optional[str] = Field(default=None, alias="postAmountUi")
    delta: Optional[str] = None
    delta_ui: Optional[str] = Field(default=None, alias="deltaUi")


class TransactionEvent(WireModel):
    kind: ClassVar[str] = EventKind.TRANSACTION
    format: ClassVar[str] = ""

    type: Literal["transaction"] = "transaction"
    signature: str
    commitment: Optional[str] = None
    slot: Optional[int] = None
    is_vote: Optional[bool] = Field(default=None, alias="isVote")
    index: Optional[int] = None
    err: Optional[Any] = None
    accounts: Optional[list[str]] = None
    logs: Optional[list[str]] = None
    compute_units_consumed: Optional[int] = Field(default=None, alias="computeUnitsConsumed")


class EnhancedTransactionEvent(TransactionEvent):
    format: ClassVar[str] = "enhanced"

    timestamp: Optional[int] = None
    fee: Optional[int] = None
    fee_payer: Optional[str] = Field(default=None, alias="feePayer")
    native_transfers: list[NativeTransfer] = Field(default_factory=list, alias="nativeTransfers")
    token_transfers: list[TokenTransfer] = Field(default_factory=list, alias="tokenTransfers")
    account_data: list[AccountData] = Field(default_factory=list, alias="accountData")


class RawTransactionEvent(TransactionEvent):
    format: ClassVar[str] = "raw"

    token_balance_changes: Optional[list[RawTokenBalanceChange]] = Field(default=None, alias="tokenBalanceChanges")


class AccountEvent(WireModel):
    kind: ClassVar[str] = EventKind.ACCOUNT

    type: Literal["account"] = "account"
    pubkey: str
    stream: Optional[str] = None
    owner: Optional[str] = None
    lamports: Optional[Union[str, int]] = None
    executable: Optional[bool] = None
    rent_epoch: Optional[Union[str, int]] = Field(default=None, alias="rentEpoch")
    data: Optional[str] = None
    data_encoding: Optional[str] = Field(default=None, alias="dataEncoding")  # "base64" | "hex"
    write_version: Optional[Union[str, int]] = Field(default=None, alias="writeVersion")
    slot: Optional[int] = None
    txn_signature: Optional[str] = Field(default=None, alias="txnSignature")


class SlotEvent(WireModel):
    kind: ClassVar[str] = EventKind.SLOT

    type: Literal["slot"] = "slot"
    slot: int
    parent: Optional[int] = None
    status: Optional[str] = None
    stream: Optional[str] = None
    tps: Optional[float] = None
    sample_period_seconds: Optional[float] = Field(default=None, alias="samplePeriodSeconds")
    sample_transactions: Optional[int] = Field(default=None, alias="sampleTransactions")
    sample_slots: Optional[int] = Field(default=None, alias="sampleSlots")
    sample_slot: Optional[int] = Field(default=None, alias="sampleSlot")


class TickerEvent(WireModel):
    kind: ClassVar[str] = EventKind.TICKER

    type: Literal["ticker"] = "ticker"
    base_mint: str = Field(alias="baseMint")
    quote_mint: Optional[str] = Field(default=None, alias="quoteMint")
    price: Optional[float] = None
    dex: Optional[str] = None
    slot: Optional[int] = None
    signature: Optional[str] = None


class LeaderboardItem(WireModel):
    mint: Optional[str] = None
    volume_usd: Optional[float] = Field(default=None, alias="volumeUsd")


class LeaderboardEvent(WireModel):
    kind: ClassVar[str] = EventKind.LEADERBOARD

    type: Literal["leaderboard"] = "leaderboard"
    items: list[LeaderboardItem]
    window_seconds: Optional[float] = Field(default=None, alias="windowSeconds")
    interval_seconds: Optional[float] = Field(default=None, alias="intervalSeconds")
    as_of: Optional[str] = Field(default=None, alias="asOf")


# --- lifecycle events ---


class LifecycleEvent(WireModel):
    kind: ClassVar[str] = EventKind.LIFECYCLE

    op: str


class HelloEvent(LifecycleEvent):
    op: Literal["hello"] = "hello"
    client_id: Optional[str] = Field(default=None, alias="clientId")
    expires_at: Optional[str] = Field(default=None, alias="expiresAt")
    slice_seconds: Optional[float] = Field(default=None, alias="sliceSeconds")


class RenewalReminderEvent(LifecycleEvent):
    op: Literal["renewal_reminder"] = "renewal_reminder"
    expires_at: Optional[str] = Field(default=None, alias="expiresAt")
    ms_until_expiry: Optional[float] = Field(default=None, alias="msUntilExpiry")
    renew: Optional[dict[str, Any]] = None


class PaymentRequiredEvent(LifecycleEvent):
    op: Literal["payment_required"] = "payment_required"
    reason: Optional[str] = None
    renew: Optional[dict[str, Any]] = None


class RenewedEvent(LifecycleEvent):
    op: Literal["renewed"] = "renewed"
    expires_at: Optional[str] = Field(default=None, alias="expiresAt")
    method: Optional[str] = None


class ErrorEvent(LifecycleEvent):
    op: Literal["error"] = "error"
    message: Optional[str] = None


class Unrecognized(BaseModel):
    """Inbound payload that matched no event variant."""
    kind: ClassVar[str] = EventKind.UNRECOGNIZED

    reason: str
    payload: Any = None


InboundEvent = Union[
    StatusEvent,
    EnhancedTransactionEvent,
    RawTransactionEvent,
    AccountEvent,
    SlotEvent,
    TickerEvent,
    LeaderboardEvent,
    HelloEvent,
    RenewalReminderEvent,
    PaymentRequiredEvent,
    RenewedEvent,
    ErrorEvent,
]

LIFECYCLE_MODELS: dict[str, type[LifecycleEvent]] = {
    ServerOp.HELLO: HelloEvent,
    ServerOp.RENEWAL_REMINDER: RenewalReminderEvent,
    ServerOp.PAYMENT_REQUIRED: PaymentRequiredEvent,
    ServerOp.RENEWED: RenewedEvent,
    ServerOp.ERROR: ErrorEvent,
}
