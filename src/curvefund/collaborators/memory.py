from __future__ import annotations

import json
import math
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from curvefund.collaborators.interfaces import LedgerRow
from curvefund.ledger.errors import CampaignError, InvalidAmount, Unauthorized

RowKey = Tuple[str, str]


def _amount(v: int) -> int:
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise InvalidAmount("bad_transfer_amount", {"amount": repr(v)})
    return v


def _pair(owner: str, spender: str) -> str:
    return json.dumps([str(owner), str(spender)], separators=(",", ":"))


class _RowBook:
    """
    Integer rows keyed by (kind, key), changed only through _bump().

    Undo:
      - while a thread has an open checkpoint, its bumps are journaled
      - restore(mark) subtracts that thread's bumps back to the mark
      - bumps made by other threads are never journaled, so a rollback
        leaves them in place

    Persistence:
      - every bumped row is remembered until clear_pending() sees it saved
    """

    def __init__(self, persist_key: str) -> None:
        self._persist_key = str(persist_key)
        self._mu = threading.RLock()
        self._rows: Dict[RowKey, int] = {}
        self._dirty: Set[RowKey] = set()
        # thread id -> [open depth, undo journal]
        self._open: Dict[int, list] = {}

    @property
    def persist_key(self) -> str:
        return self._persist_key

    def _get(self, kind: str, key: str = "") -> int:
        return int(self._rows.get((kind, str(key)), 0))

    def _set(self, rk: RowKey, value: int) -> None:
        if value:
            self._rows[rk] = value
        else:
            self._rows.pop(rk, None)
        self._dirty.add(rk)

    def _bump(self, kind: str, key: str, delta: int) -> None:
        if not delta:
            return
        rk = (kind, str(key))
        with self._mu:
            self._set(rk, self._get(*rk) + delta)
            entry = self._open.get(threading.get_ident())
            if entry is not None:
                entry[1].append((rk, delta))

    # ----------------------------
    # Transactional
    # ----------------------------

    def checkpoint(self) -> int:
        with self._mu:
            entry = self._open.setdefault(threading.get_ident(), [0, []])
            entry[0] += 1
            return len(entry[1])

    def _close(self, tid: int) -> None:
        entry = self._open.get(tid)
        if entry is None:
            return
        entry[0] -= 1
        if entry[0] <= 0:
            del self._open[tid]

    def restore(self, mark: int) -> None:
        tid = threading.get_ident()
        with self._mu:
            entry = self._open.get(tid)
            if entry is not None:
                journal = entry[1]
                while len(journal) > mark:
                    rk, delta = journal.pop()
                    self._set(rk, self._get(*rk) - delta)
            self._close(tid)

    def commit(self, mark: int) -> None:
        with self._mu:
            self._close(threading.get_ident())

    # ----------------------------
    # Persistent
    # ----------------------------

    def pending_rows(self) -> List[LedgerRow]:
        with self._mu:
            return [(kind, key, self._get(kind, key)) for kind, key in sorted(self._dirty)]

    def clear_pending(self, rows: Iterable[LedgerRow]) -> None:
        with self._mu:
            for kind, key, value in rows:
                rk = (kind, key)
                if rk in self._dirty and self._get(kind, key) == int(value):
                    self._dirty.discard(rk)

    def load_rows(self, rows: Iterable[LedgerRow]) -> None:
        with self._mu:
            for kind, key, value in rows:
                rk = (str(kind), str(key))
                if int(value):
                    self._rows[rk] = int(value)
                else:
                    self._rows.pop(rk, None)
                self._dirty.discard(rk)


class _Balances(_RowBook):
    """ERC20-shaped balance + allowance book shared by the memory ledgers."""

    def balance_of(self, account: str) -> int:
        return self._get("balance", str(account))

    def allowance(self, owner: str, spender: str) -> int:
        return self._get("allowance", _pair(owner, spender))

    def total_supply(self) -> int:
        return self._get("supply")

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        amt = _amount(amount)
        with self._mu:
            self._bump("allowance", _pair(owner, spender), amt - self.allowance(owner, spender))
        return True

    def _issue(self, to: str, amount: int) -> None:
        amt = _amount(amount)
        with self._mu:
            self._bump("balance", str(to), amt)
            self._bump("supply", "", amt)

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        amt = _amount(amount)
        with self._mu:
            if self.balance_of(sender) < amt:
                return False
            self._bump("balance", str(sender), -amt)
            self._bump("balance", str(recipient), amt)
        return True

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        amt = _amount(amount)
        with self._mu:
            if self.allowance(owner, spender) < amt or self.balance_of(owner) < amt:
                return False
            self._bump("allowance", _pair(owner, spender), -amt)
            self._bump("balance", str(owner), -amt)
            self._bump("balance", str(recipient), amt)
        return True


class InMemoryToken(_Balances):
    """
    Project token for tests and single-process deployments.

    - Mint is gated on a single minter identity (the campaign)
    - The minter is bound once, after the campaign identity exists
    """

    def __init__(self, *, token_id: str = "TOKEN", minter: Optional[str] = None) -> None:
        super().__init__(persist_key=f"token:{token_id}")
        self._token_id = str(token_id)
        self._minter = minter

    @property
    def token_id(self) -> str:
        return self._token_id

    @property
    def minter(self) -> Optional[str]:
        return self._minter

    def bind_minter(self, minter: str) -> None:
        if self._minter is not None and self._minter != minter:
            raise Unauthorized("minter_already_bound", {"minter": self._minter})
        self._minter = str(minter)

    def mint(self, caller: str, to: str, amount: int) -> None:
        if self._minter is None or str(caller) != self._minter:
            raise Unauthorized("mint_not_permitted", {"caller": str(caller), "token": self._token_id})
        self._issue(to, amount)


class InMemorySettlementAsset(_Balances):
    """Settlement asset with a faucet for funding test accounts."""

    def __init__(self, *, asset_id: str = "USD") -> None:
        super().__init__(persist_key=f"asset:{asset_id}")
        self._asset_id = str(asset_id)

    @property
    def asset_id(self) -> str:
        return self._asset_id

    def faucet(self, to: str, amount: int) -> None:
        self._issue(to, amount)


class InMemoryLiquidityVenue(_RowBook):
    """
    Constant-product pool for one (token, asset) pair.

    The first deposit sets the price and mints sqrt(token * asset) position
    units; later deposits are matched to the current ratio, consuming the
    limiting side in full. Deposits are pulled with transfer_from, so the
    caller must have approved the venue on both ledgers first.
    """

    def __init__(
        self,
        *,
        token: InMemoryToken,
        asset: InMemorySettlementAsset,
        venue_id: str = "POOL",
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(persist_key=f"venue:{venue_id}")
        self._venue_id = str(venue_id)
        self._token = token
        self._asset = asset
        self._clock = clock

    @property
    def venue_id(self) -> str:
        return self._venue_id

    @property
    def reserve_token(self) -> int:
        return self._get("reserve", "token")

    @property
    def reserve_asset(self) -> int:
        return self._get("reserve", "asset")

    @property
    def total_positions(self) -> int:
        return self._get("reserve", "positions")

    @property
    def positions(self) -> Dict[str, int]:
        with self._mu:
            return {key: v for (kind, key), v in self._rows.items() if kind == "position"}

    def _matched(self, token_amount: int, asset_amount: int) -> Tuple[int, int]:
        if self.total_positions == 0:
            return token_amount, asset_amount
        asset_optimal = token_amount * self.reserve_asset // self.reserve_token
        if asset_optimal <= asset_amount:
            return token_amount, asset_optimal
        return asset_amount * self.reserve_token // self.reserve_asset, asset_amount

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
        if int(self._clock()) > int(deadline):
            raise CampaignError("venue_rejected", "deadline_expired", {"deadline": int(deadline)})

        tok = _amount(token_amount)
        ast = _amount(asset_amount)
        if tok == 0 or ast == 0:
            raise CampaignError("venue_rejected", "insufficient_amount", {"token": tok, "asset": ast})

        with self._mu:
            used_tok, used_ast = self._matched(tok, ast)
            if used_tok < int(min_token) or used_ast < int(min_asset):
                raise CampaignError(
                    "venue_rejected",
                    "slippage_exceeded",
                    {"token_used": used_tok, "asset_used": used_ast, "min_token": int(min_token), "min_asset": int(min_asset)},
                )

            if self.total_positions == 0:
                position = math.isqrt(used_tok * used_ast)
            else:
                position = min(
                    used_tok * self.total_positions // self.reserve_token,
                    used_ast * self.total_positions // self.reserve_asset,
                )
            if position <= 0:
                raise CampaignError("venue_rejected", "insufficient_liquidity_minted", {})

            if not self._token.transfer_from(self._venue_id, caller, self._venue_id, used_tok):
                raise CampaignError("venue_rejected", "token_transfer_failed", {"amount": used_tok})
            if not self._asset.transfer_from(self._venue_id, caller, self._venue_id, used_ast):
                raise CampaignError("venue_rejected", "asset_transfer_failed", {"amount": used_ast})

            self._bump("reserve", "token", used_tok)
            self._bump("reserve", "asset", used_ast)
            self._bump("reserve", "positions", position)
            self._bump("position", str(recipient), position)
        return used_tok, used_ast, position


__all__ = ["InMemoryToken", "InMemorySettlementAsset", "InMemoryLiquidityVenue"]
