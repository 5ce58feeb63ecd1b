"""
x402 ``exact`` scheme signer for EVM networks.

Signs an ERC-3009 TransferWithAuthorization for the amount, asset and
recipient named by the selected payment requirement.
"""

from __future__ import annotations

import secrets
import time
from typing import Any, Dict, Optional

from eth_abi.exceptions import EncodingError
from eth_account import Account
from eth_account.messages import encode_typed_data
from hexbytes import HexBytes

from ws402.errors import ConfigError, PaymentError
from ws402.models.payment import PaymentRequired

__all__ = ["EvmExactSigner", "resolve_chain_id"]

DEFAULT_BACKDATE_SECONDS = 600

# x402 v1 network names; v2 uses CAIP-2 ids ("eip155:<chainId>")
NETWORK_CHAIN_IDS: Dict[str, int] = {
    "ethereum": 1,
    "sepolia": 11155111,
    "base": 8453,
    "base-sepolia": 84532,
    "bsc": 56,
    "bsc-testnet": 97,
    "polygon": 137,
    "polygon-amoy": 80002,
    "avalanche": 43114,
    "avalanche-fuji": 43113,
}


def _normalize_private_key(raw_key: str) -> str:
    key = raw_key.strip()
    if not key:
        raise ConfigError("PAYER_PRIVATE_KEY must not be empty")
    if not key.startswith("0x"):
        key = "0x" + key
    if len(key) != 66:
        raise ConfigError("PAYER_PRIVATE_KEY must be 32 bytes (64 hex chars)")
    return key


def _to_hex(value: bytes) -> str:
    text = value.hex()
    return text if text.startswith("0x") else "0x" + text


def resolve_chain_id(network: str) -> int:
    if network.startswith("eip155:"):
        try:
            return int(network.split(":", 1)[1])
        except ValueError as exc:
            raise PaymentError(f"Invalid CAIP-2 network '{network}'") from exc
    try:
        return NETWORK_CHAIN_IDS[network]
    except KeyError as exc:
        raise PaymentError(f"Unsupported network '{network}'") from exc


class EvmExactSigner:
    def __init__(self, private_key: str, *, backdate_seconds: int = DEFAULT_BACKDATE_SECONDS):
        key = _normalize_private_key(private_key)
        try:
            self._account = Account.from_key(key)
        except ValueError as exc:
            raise ConfigError(f"PAYER_PRIVATE_KEY is not a valid private key: {exc}") from exc
        self._backdate_seconds = backdate_seconds

    @property
    def address(self) -> str:
        return self._account.address

    def create_payment_payload(
        self,
        payment_required: PaymentRequired,
        requirement: dict[str, Any],
        *,
        now: Optional[int] = None,
        nonce: Optional[bytes] = None,
    ) -> dict[str, Any]:
        scheme = requirement.get("scheme")
        if scheme != "exact":
            raise PaymentError(f"Unsupported payment scheme '{scheme}'", details={"requirement": requirement})
        network = str(requirement.get("network") or "")
        authorization = self._sign_authorization(requirement, now=now, nonce=nonce)

        if payment_required.x402_version >= 2:
            payload: dict[str, Any] = {
                "x402Version": payment_required.x402_version,
                "accepted": requirement,
                "payload": authorization,
            }
            if payment_required.resource is not None:
                payload["resource"] = payment_required.resource
            return payload

        return {
            "x402Version": 1,
            "scheme": "exact",
            "network": network,
            "payload": authorization,
        }

    def _sign_authorization(
        self,
        requirement: dict[str, Any],
        *,
        now: Optional[int],
        nonce: Optional[bytes],
    ) -> dict[str, Any]:
        try:
            chain_id = resolve_chain_id(str(requirement.get("network") or ""))
            pay_to = requirement["payTo"]
            asset = requirement["asset"]
            value = int(requirement.get("maxAmountRequired") or requirement["amount"])
            timeout = int(requirement.get("maxTimeoutSeconds") or 60)
            extra = requirement.get("extra") or {}
            token_name = extra["name"]
            token_version = extra["version"]
        except (KeyError, TypeError, ValueError) as exc:
            raise PaymentError(f"Payment requirement is incomplete: {exc}", details={"requirement": requirement}) from exc

        now = int(time.time()) if now is None else now
        nonce_bytes = nonce if nonce is not None else secrets.token_bytes(32)
        valid_after = now - self._backdate_seconds
        valid_before = now + timeout

        typed_data = {
            "types": {
                "EIP712Domain": [
                    {"name": "name", "type": "string"},
                    {"name": "version", "type": "string"},
                    {"name": "chainId", "type": "uint256"},
                    {"name": "verifyingContract", "type": "address"},
                ],
                "TransferWithAuthorization": [
                    {"name": "from", "type": "address"},
                    {"name": "to", "type": "address"},
                    {"name": "value", "type": "uint256"},
                    {"name": "validAfter", "type": "uint256"},
                    {"name": "validBefore", "type": "uint256"},
                    {"name": "nonce", "type": "bytes32"},
                ],
            },
            "primaryType": "TransferWithAuthorization",
            "domain": {
                "name": token_name,
                "version": token_version,
                "chainId": chain_id,
                "verifyingContract": asset,
            },
            "message": {
                "from": self._account.address,
                "to": pay_to,
                "value": value,
                "validAfter": valid_after,
                "validBefore": valid_before,
                "nonce": HexBytes(nonce_bytes),
            },
        }

        try:
            signable = encode_typed_data(full_message=typed_data)
            signature = self._account.sign_message(signable).signature
        except (EncodingError, TypeError, ValueError) as exc:
            raise PaymentError(f"Failed to sign payment authorization: {exc}") from exc

        return {
            "signature": _to_hex(signature),
            "authorization": {
                "from": self._account.address,
                "to": pay_to,
                "value": str(value),
                "validAfter": str(valid_after),
                "validBefore": str(valid_before),
                "nonce": _to_hex(nonce_bytes),
            },
        }
