# milkflow/services/realtime.py
"""
Push updates for a supplier's own dashboard.

A feed subscribes to the collection signals and, whenever a record that
belongs to its supplier is created or deleted, recomputes the whole
dashboard from the stored rows. Averages are never patched incrementally.
"""
from __future__ import annotations

import json
import queue
from typing import Iterator

from flask import current_app

from milkflow.signals import collection_created, collection_deleted

from .access import AccessContext
from .collections import own_supplier, supplier_dashboard


class SupplierDashboardFeed:
    def __init__(self, ctx: AccessContext, maxsize: int = 50):
        self.ctx = ctx
        self.updates: "queue.Queue[dict]" = queue.Queue(maxsize=maxsize)
        self.snapshot: dict | None = None
        self._supplier_id = None
        self._connected = False

    # ---- lifecycle ----
    def open(self) -> dict:
        supplier = own_supplier(self.ctx)
        self._supplier_id = supplier.id if supplier else None
        collection_created.connect(self._on_created)
        collection_deleted.connect(self._on_deleted)
        self._connected = True
        return self.refresh()

    def close(self) -> None:
        if self._connected:
            collection_created.disconnect(self._on_created)
            collection_deleted.disconnect(self._on_deleted)
            self._connected = False

    def __enter__(self) -> "SupplierDashboardFeed":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---- recompute ----
    def refresh(self) -> dict:
        self.snapshot = supplier_dashboard(self.ctx)
        return self.snapshot

    def _push(self) -> None:
        snapshot = self.refresh()
        try:
            self.updates.put_nowait(snapshot)
        except queue.Full:
            # A slow consumer only needs the newest state.
            try:
                self.updates.get_nowait()
            except queue.Empty:
                pass
            self.updates.put_nowait(snapshot)

    def _on_created(self, sender, collection=None, **extra) -> None:
        if collection is not None and self._supplier_id is not None and collection.supplier_id == self._supplier_id:
            self._push()

    def _on_deleted(self, sender, supplier_id=None, **extra) -> None:
        if self._supplier_id is not None and supplier_id == self._supplier_id:
            self._push()

    # ---- server-sent events ----
    def events(self, timeout: float = 25.0) -> Iterator[str]:
        """Yield the current snapshot, then one event per update; keep-alive comments in between."""
        try:
            yield _sse(self.snapshot if self.snapshot is not None else self.refresh())
            while True:
                try:
                    snapshot = self.updates.get(timeout=timeout)
                except queue.Empty:
                    yield ": keep-alive\n\n"
                    continue
                yield _sse(snapshot)
        finally:
            self.close()
            current_app.logger.debug("Dashboard feed closed for user %s", self.ctx.user_id)


def _sse(payload: dict) -> str:
    return f"event: dashboard\ndata: {json.dumps(payload)}\n\n"
