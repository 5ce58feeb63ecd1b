"""
Stream subscription settings sent once when the websocket opens.
"""

from typing import Any, Literal

from pydantic import BaseModel

from ws402.models.events import ClientOp

EventFormat = Literal["raw", "enhanced"]


class OutputOptions(BaseModel):
    event_format: EventFormat = "enhanced"
    include_accounts: bool = True
    include_token_balance_changes: bool = True
    include_logs: bool = False
    include_instructions: bool = False
    filter_token_balances: bool = False

    model_config = {"frozen": True}

    def to_message(self) -> dict[str, Any]:
        return {
            "op": ClientOp.SET_OPTIONS,
            "includeAccounts": self.include_accounts,
            "includeTokenBalanceChanges": self.include_token_balance_changes,
            "includeLogs": self.include_logs,
            "includeInstructions": self.include_instructions,
            "eventFormat": self.event_format,
            "filterTokenBalances": self.filter_token_balances,
        }


class Watchlist(BaseModel):
    accounts: tuple[str, ...] = ()
    programs: tuple[str, ...] = ()

    model_config = {"frozen": True}

    @property
    def empty(self) -> bool:
        return not self.accounts and not self.programs
