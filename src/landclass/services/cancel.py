# src/landclass/services/cancel.py
from __future__ import annotations

import threading

from ..contracts.errors import PipelineCancelled


class CancelToken:
    """Bandera de cancelación cooperativa; el pipeline la consulta entre bloques."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, **context) -> None:
        if self._event.is_set():
            raise PipelineCancelled("ejecución cancelada por una selección más nueva", **context)


__all__ = ["CancelToken"]
