"""
x402 payment-required challenge and the in-band renewal payment built from it.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class PaymentRequired(BaseModel):
    """Decoded 402 challenge. ``accepts`` entries are passed through untouched."""
    x402_version: int = Field(default=1, alias="x402Version")
    accepts: list[dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None
    resource: Optional[Any] = None

    model_config = {"populate_by_name": True, "extra": "allow"}

    def select_requirement(self) -> Optional[dict[str, Any]]:
        """First acceptable requirement, or None when nothing is offered."""
        return self.accepts[0] if self.accepts else None


class InbandPayment(BaseModel):
    """Payment prepared by the challenge step, sent as ``renew_inband``."""
    requirement: dict[str, Any]
    payload: dict[str, Any]

    model_config = {"frozen": True}
