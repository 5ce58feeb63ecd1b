"""
Payment signers.

A signer turns one x402 payment requirement into a signed payment payload. The
client only depends on the :class:`Signer` protocol; :class:`EvmExactSigner` is
the implementation shipped with the package.
"""

from typing import Any, Protocol

from ws402.models.payment import PaymentRequired


class Signer(Protocol):
    def create_payment_payload(
        self, payment_required: PaymentRequired, requirement: dict[str, Any],
    ) -> dict[str, Any]:
        """Return the payment payload for ``requirement``. Raises PaymentError."""
        ...


from ws402.signers.evm import EvmExactSigner  # noqa: E402

__all__ = ["Signer", "EvmExactSigner"]
