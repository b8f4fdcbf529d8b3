"""
curvefund — Collaborator interfaces

The campaign core never owns balances. It talks to three external ledgers
through these structural interfaces:

  - TokenLedger:      the project token; only the campaign may mint
  - SettlementLedger: the asset buyers pay with; transfers report success
                      as a bool which the core must check
  - LiquidityVenue:   the pool seeded once at finalize

Caller identity is always explicit (first argument) since there is no
ambient message sender outside a contract host.

Backends that can undo their own writes implement Transactional; the
campaign's atomic unit rolls them back together with its own state.
Backends that keep state in-process implement Persistent so the campaign
store can save them with each snapshot.
"""
from __future__ import annotations

from typing import Any, Iterable, List, Protocol, Tuple, runtime_checkable

# (kind, key, value) rows a persistent backend hands to the campaign store
LedgerRow = Tuple[str, str, int]


# ---------------------------------------------------------------------
# Atomic-unit participation
# ---------------------------------------------------------------------

@runtime_checkable
class Transactional(Protocol):
    """A backend that can undo the current transition's own writes.

    checkpoint() returns a mark; restore(mark) undoes every write this
    thread made since the mark, leaving writes from other threads alone;
    commit(mark) releases the undo record once the outermost unit is done.
    """

    def checkpoint(self) -> Any: ...
    def restore(self, mark: Any) -> None: ...
    def commit(self, mark: Any) -> None: ...


@runtime_checkable
class Persistent(Protocol):
    """A backend whose state is saved alongside the campaign snapshot.

    pending_rows() lists rows changed since they were last saved;
    clear_pending(rows) marks those rows saved unless they moved again;
    load_rows() restores rows read back from the store.
    """

    @property
    def persist_key(self) -> str: ...

    def pending_rows(self) -> List[LedgerRow]: ...
    def clear_pending(self, rows: Iterable[LedgerRow]) -> None: ...
    def load_rows(self, rows: Iterable[LedgerRow]) -> None: ...


# ---------------------------------------------------------------------
# Token ledger
# ---------------------------------------------------------------------

@runtime_checkable
class TokenLedger(Protocol):
    @property
    def token_id(self) -> str: ...

    def mint(self, caller: str, to: str, amount: int) -> None: ...
    def approve(self, owner: str, spender: str, amount: int) -> bool: ...
    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool: ...

    def balance_of(self, account: str) -> int: ...
    def total_supply(self) -> int: ...


# ---------------------------------------------------------------------
# Settlement-asset ledger
# ---------------------------------------------------------------------

@runtime_checkable
class SettlementLedger(Protocol):
    @property
    def asset_id(self) -> str: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool: ...
    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool: ...
    def approve(self, owner: str, spender: str, amount: int) -> bool: ...

    def balance_of(self, account: str) -> int: ...


# ---------------------------------------------------------------------
# Liquidity venue
# ---------------------------------------------------------------------

@runtime_checkable
class LiquidityVenue(Protocol):
    @property
    def venue_id(self) -> str: ...

    def add_liquidity(
        self,
        caller: str,
        token_amount: int,
        asset_amount: int,
        min_token: int,
        min_asset: int,
        recipient: str,
        deadline: int,
    ) -> Tuple[int, int, int]:
        """Returns (token_used, asset_used, position_size)."""
        ...


__all__ = ["LedgerRow", "Persistent", "Transactional", "TokenLedger", "SettlementLedger", "LiquidityVenue"]
