from __future__ import annotations

"""All-or-nothing execution across the campaign and its backends.

A transition touches the campaign aggregate plus up to three external
ledgers. Outside a contract host nothing reverts those for us, so each
participant that can undo its own writes (Transactional) is marked on
entry. If the body raises, participants undo back to their marks in
reverse order; otherwise the marks are committed.

Undo is scoped to the transition's own writes: a deposit another thread
makes to the same ledger while the transition runs survives a rollback.

Participants that are not Transactional cannot be rolled back; their
effects after a failure are the backend's responsibility. The in-memory
backends are all Transactional.
"""

from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Tuple

from curvefund.collaborators.interfaces import Transactional


@contextmanager
def atomic_unit(participants: Iterable[Any]) -> Iterator[None]:
    marks: List[Tuple[Transactional, Any]] = []
    seen: set[int] = set()
    for p in participants:
        if id(p) in seen or not isinstance(p, Transactional):
            continue
        seen.add(id(p))
        marks.append((p, p.checkpoint()))

    try:
        yield
    except BaseException:
        for p, mark in reversed(marks):
            p.restore(mark)
        raise

    for p, mark in marks:
        p.commit(mark)


__all__ = ["atomic_unit"]
