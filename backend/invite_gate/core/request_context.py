# backend/invite_gate/core/request_context.py
"""
Per-request state shared by the HTTP middleware, the log filter and the
engine cursor hooks.

`request_scope()` opens a request: it binds the request id and a fresh
DbMetrics, then restores whatever was bound before on exit. Sync routes run
in a copied context, so the hooks mutate the same DbMetrics object the
middleware reads afterwards.
"""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterator, Optional

SQL_HEAD_CHARS = 240

request_id_var: ContextVar[Optional[str]] = ContextVar("invite_gate_request_id", default=None)


def get_request_id() -> str:
    return request_id_var.get() or "-"


@dataclass
class DbMetrics:
    query_count: int = 0
    total_ms: float = 0.0
    slowest_ms: float = 0.0
    # Statement text only, never bound parameters (tokens are bearer secrets).
    slowest_sql_head: str = ""

    def record(self, duration_ms: float, sql_head: str = "") -> None:
        duration_ms = float(duration_ms)
        self.query_count += 1
        self.total_ms += duration_ms
        if duration_ms > self.slowest_ms:
            self.slowest_ms = duration_ms
            self.slowest_sql_head = (sql_head or "")[:SQL_HEAD_CHARS]

    def exceeds(self, total_budget_ms: float) -> bool:
        return self.query_count > 0 and self.total_ms >= float(total_budget_ms)


db_metrics_var: ContextVar[Optional[DbMetrics]] = ContextVar("invite_gate_db_metrics", default=None)


def get_db_metrics() -> DbMetrics:
    m = db_metrics_var.get()
    if m is None:
        m = DbMetrics()
        db_metrics_var.set(m)
    return m


def record_db_query(duration_ms: float, sql_head: str = "") -> None:
    """Called from the engine hooks; outside a request it feeds a throwaway DbMetrics."""
    get_db_metrics().record(duration_ms, sql_head)


@contextmanager
def request_scope(request_id: str) -> Iterator[DbMetrics]:
    metrics = DbMetrics()
    rid_token = request_id_var.set(request_id)
    metrics_token = db_metrics_var.set(metrics)
    try:
        yield metrics
    finally:
        db_metrics_var.reset(metrics_token)
        request_id_var.reset(rid_token)
