from __future__ import annotations

"""In-process campaign metrics with Prometheus text exposition.

Families are declared once (name, type, help) and hold a single integer
sample each; the campaign has no per-label cardinality worth tracking.
Exposition is off unless CURVEFUND_METRICS_ENABLED is truthy.
"""

import os
import threading
import time
from dataclasses import dataclass
from typing import Dict, List

_TRUTHY = {"1", "true", "yes", "y", "on"}


@dataclass
class _Family:
    name: str
    kind: str  # "counter" | "gauge"
    help: str
    value: int = 0


class Registry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._families: Dict[str, _Family] = {}
        self._started = time.monotonic()

    def declare(self, name: str, kind: str, help_text: str) -> None:
        with self._lock:
            self._families.setdefault(name, _Family(name=name, kind=kind, help=help_text))

    def _family(self, name: str, kind: str) -> _Family:
        fam = self._families.get(name)
        if fam is None:
            fam = self._families[name] = _Family(name=name, kind=kind, help="")
        elif fam.kind != kind:
            raise ValueError(f"metric {name} is a {fam.kind}, not a {kind}")
        return fam

    def inc(self, name: str, value: int = 1) -> None:
        if int(value) < 0:
            raise ValueError("counters only go up")
        with self._lock:
            self._family(name, "counter").value += int(value)

    def set(self, name: str, value: int) -> None:
        with self._lock:
            self._family(name, "gauge").value = int(value)

    def clear(self) -> None:
        with self._lock:
            for fam in self._families.values():
                fam.value = 0

    def values(self) -> Dict[str, int]:
        with self._lock:
            return {n: f.value for n, f in self._families.items()}

    def exposition(self, prefix: str) -> str:
        lines: List[str] = [
            f"# TYPE {prefix}uptime_seconds gauge",
            f"{prefix}uptime_seconds {int(time.monotonic() - self._started)}",
        ]
        with self._lock:
            fams = sorted(self._families.values(), key=lambda f: f.name)
            for f in fams:
                if f.help:
                    lines.append(f"# HELP {prefix}{f.name} {f.help}")
                lines.append(f"# TYPE {prefix}{f.name} {f.kind}")
                lines.append(f"{prefix}{f.name} {f.value}")
        return "\n".join(lines) + "\n"


REGISTRY = Registry()
REGISTRY.declare("campaign_purchases_total", "counter", "Purchases committed.")
REGISTRY.declare("campaign_rejections_total", "counter", "Transitions refused with a CampaignError.")
REGISTRY.declare("campaign_finalized", "gauge", "1 once the campaign has distributed.")


def metrics_enabled() -> bool:
    return (os.environ.get("CURVEFUND_METRICS_ENABLED") or "").strip().lower() in _TRUTHY


def inc_counter(name: str, value: int = 1) -> None:
    REGISTRY.inc(name, value)


def set_gauge(name: str, value: int) -> None:
    REGISTRY.set(name, value)


def reset() -> None:
    """Zero every sample (tests)."""
    REGISTRY.clear()


def snapshot() -> Dict[str, int]:
    return REGISTRY.values()


def format_prometheus(prefix: str = "curvefund_") -> str:
    return REGISTRY.exposition(prefix or "curvefund_")
