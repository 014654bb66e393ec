# src/landclass/services/runner.py
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from ..contracts.core import Selection
from ..contracts.products import LandCoverSummary
from .cancel import CancelToken
from .summary_service import LandCoverSummaryService

logger = logging.getLogger(__name__)

ResultCallback = Callable[[LandCoverSummary], None]


class LatestSelectionRunner:
    """
    Ejecuta resúmenes en segundo plano; una selección nueva cancela la anterior.
    Solo el resultado de la última selección llega a `on_result`.
    Las ejecuciones canceladas terminan su Future con PipelineCancelled.
    `on_result` corre con el lock tomado; puede llamar a `submit()` (RLock).
    """

    def __init__(self, service: LandCoverSummaryService, max_workers: int = 2) -> None:
        self._service = service
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="landclass-run")
        self._lock = threading.RLock()
        self._generation = 0
        self._token: Optional[CancelToken] = None

    def submit(self, selection: Selection, on_result: Optional[ResultCallback] = None) -> "Future[LandCoverSummary]":
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            self._generation += 1
            gen = self._generation
            token = CancelToken()
            self._token = token
        return self._pool.submit(self._work, gen, selection, token, on_result)

    def _work(
        self,
        gen: int,
        selection: Selection,
        token: CancelToken,
        on_result: Optional[ResultCallback],
    ) -> LandCoverSummary:
        summary = self._service.run(selection, cancel=token)
        # la entrega ocurre bajo el lock: un submit() concurrente espera a que termine
        with self._lock:
            if gen != self._generation or token.cancelled:
                logger.debug("Resultado descartado (selección %d superada)", gen)
            elif on_result is not None:
                on_result(summary)
        return summary

    def cancel(self) -> None:
        with self._lock:
            if self._token is not None:
                self._token.cancel()

    def shutdown(self, wait: bool = True) -> None:
        self.cancel()
        self._pool.shutdown(wait=wait)

    def __enter__(self) -> "LatestSelectionRunner":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()


__all__ = ["LatestSelectionRunner", "CancelToken"]
