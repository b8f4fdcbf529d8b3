# src/curvefund/runtime/sqlite_db.py
from __future__ import annotations

import os
import json
import sqlite3
import time
import random
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from curvefund.collaborators.interfaces import LedgerRow
from curvefund.ledger.state import CampaignState

Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    """Canonical JSON encoding.

    Do not coerce unknown types (e.g. default=str): a non-JSON value leaking
    into persisted state is a bug and must fail fast.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except ValueError:
        return int(default)


class SqliteDB:
    """SQLite manager for campaign persistence.

    Design goals:
      - single durable DB file per deployment
      - cross-process safe (SQLite locks)
      - cross-thread safe by never sharing connections

    SQLite allows only one writer at a time; BEGIN IMMEDIATE can transiently
    fail with "database is locked", so write_tx() retries with a deadline.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def _sqlite_synchronous_pragma() -> str:
        """prod -> FULL, dev/testnet -> NORMAL; CURVEFUND_SQLITE_SYNCHRONOUS overrides."""
        mode = (os.environ.get("CURVEFUND_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        raw = (os.environ.get("CURVEFUND_SQLITE_SYNCHRONOUS") or default).strip().upper()
        if raw not in {"OFF", "NORMAL", "FULL", "EXTRA"}:
            raw = default
        return raw

    def _connect(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        connect_timeout_s = float(_env_int("CURVEFUND_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0
        con = sqlite3.connect(
            self.path,
            timeout=connect_timeout_s,
            isolation_level=None,  # we manage BEGIN/COMMIT ourselves
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
        mode = str(row[0]).strip().lower() if row is not None else ""
        if mode and mode != "wal":
            con.close()
            raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")

        con.execute(f"PRAGMA synchronous={self._sqlite_synchronous_pragma()};")
        con.execute("PRAGMA foreign_keys=ON;")
        con.execute("PRAGMA temp_store=MEMORY;")
        con.execute(f"PRAGMA busy_timeout={int(connect_timeout_s * 1000)};")
        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS campaign_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  campaign_id TEXT NOT NULL,
                  finalized INTEGER NOT NULL,
                  state_json TEXT NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS campaign_events (
                  seq INTEGER PRIMARY KEY,
                  kind TEXT NOT NULL,
                  event_json TEXT NOT NULL,
                  created_ts_ms INTEGER NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS ledger_rows (
                  ledger TEXT NOT NULL,
                  kind TEXT NOT NULL,
                  row_key TEXT NOT NULL,
                  value TEXT NOT NULL,
                  PRIMARY KEY (ledger, kind, row_key)
                );
                """
            )

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            elif str(row["value"]) != str(self.SCHEMA_VERSION):
                raise RuntimeError(
                    f"sqlite schema_version mismatch: have={row['value']} want={self.SCHEMA_VERSION}. "
                    "Refuse to start to avoid corrupting data."
                )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _is_locked_error(e: Exception) -> bool:
        msg = str(e).lower()
        return ("database is locked" in msg) or ("database is busy" in msg)

    def _backoff(self, attempt: int) -> None:
        base_sleep = max(0.001, float(_env_int("CURVEFUND_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0)
        max_sleep = max(base_sleep, float(_env_int("CURVEFUND_SQLITE_WRITE_BACKOFF_MAX_MS", 250)) / 1000.0)
        sleep_s = min(max_sleep, base_sleep * (2.0 ** min(attempt, 8)))
        time.sleep(sleep_s * (0.5 + random.random()))

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Write transaction with bounded retry on writer-lock contention.

        Policy:
          - retry BEGIN IMMEDIATE / COMMIT until a deadline
          - exponential backoff with jitter
          - then raise (fail closed)
        """
        deadline_ts = _now_ms() + max(250, _env_int("CURVEFUND_SQLITE_WRITE_DEADLINE_MS", 30_000))

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                        raise
                    self._backoff(attempt)
                    attempt += 1

            try:
                yield con

                c_attempt = 0
                while True:
                    try:
                        con.execute("COMMIT;")
                        break
                    except sqlite3.OperationalError as e:
                        if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                            raise
                        self._backoff(c_attempt)
                        c_attempt += 1
            except BaseException:
                con.execute("ROLLBACK;")
                raise


class CampaignStore:
    """Campaign snapshot + event journal persisted in SQLite.

    - read(): load the latest snapshot (events re-attached from the journal)
    - save(st, new_events, ledgers): overwrite snapshot, append events and
      upsert in-process ledger rows in one write transaction
    - events(): page through the journal
    - ledger_rows(ledger): rows saved for one in-process ledger
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM campaign_state WHERE id=1;").fetchone() is not None

    def read(self) -> CampaignState:
        with self._db.connection() as con:
            row = con.execute("SELECT state_json FROM campaign_state WHERE id=1;").fetchone()
            if row is None:
                raise FileNotFoundError("sqlite campaign_state is missing")
            j = json.loads(str(row["state_json"]))
            rows = con.execute("SELECT event_json FROM campaign_events ORDER BY seq ASC;").fetchall()
        j["events"] = [json.loads(str(r["event_json"])) for r in rows]
        return CampaignState.from_json(j)

    def save(
        self,
        st: CampaignState,
        new_events: Sequence[Json] = (),
        *,
        ledgers: Optional[Mapping[str, Sequence[LedgerRow]]] = None,
    ) -> None:
        snap = st.to_json()
        snap.pop("events", None)
        now = _now_ms()
        with self._db.write_tx() as con:
            con.execute(
                """
                INSERT INTO campaign_state(id, campaign_id, finalized, state_json, updated_ts_ms)
                VALUES(1, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  campaign_id=excluded.campaign_id,
                  finalized=excluded.finalized,
                  state_json=excluded.state_json,
                  updated_ts_ms=excluded.updated_ts_ms;
                """,
                (st.campaign_id, 1 if st.finalized else 0, _canon_json(snap), now),
            )
            for ev in new_events:
                con.execute(
                    "INSERT INTO campaign_events(seq, kind, event_json, created_ts_ms) VALUES(?,?,?,?);",
                    (int(ev["seq"]), str(ev["kind"]), _canon_json(ev), now),
                )
            for ledger, rows in (ledgers or {}).items():
                for kind, key, value in rows:
                    if not int(value):
                        con.execute(
                            "DELETE FROM ledger_rows WHERE ledger=? AND kind=? AND row_key=?;",
                            (str(ledger), str(kind), str(key)),
                        )
                        continue
                    con.execute(
                        """
                        INSERT INTO ledger_rows(ledger, kind, row_key, value) VALUES(?,?,?,?)
                        ON CONFLICT(ledger, kind, row_key) DO UPDATE SET value=excluded.value;
                        """,
                        (str(ledger), str(kind), str(key), str(int(value))),
                    )

    def events(self, *, after_seq: int = 0, limit: Optional[int] = None) -> List[Json]:
        q = "SELECT event_json FROM campaign_events WHERE seq > ? ORDER BY seq ASC"
        args: list[Any] = [int(after_seq)]
        if limit is not None:
            q += " LIMIT ?"
            args.append(int(limit))
        with self._db.connection() as con:
            rows = con.execute(q + ";", tuple(args)).fetchall()
        return [json.loads(str(r["event_json"])) for r in rows]

    def ledger_rows(self, ledger: str) -> List[LedgerRow]:
        with self._db.connection() as con:
            rows = con.execute(
                "SELECT kind, row_key, value FROM ledger_rows WHERE ledger=? ORDER BY kind, row_key;",
                (str(ledger),),
            ).fetchall()
        return [(str(r["kind"]), str(r["row_key"]), int(r["value"])) for r in rows]


__all__ = ["CampaignStore", "SqliteDB"]
