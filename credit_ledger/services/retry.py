"""Retry helper for transient store conflicts"""

import logging
import time
from typing import Callable, TypeVar

from credit_ledger.config import settings
from credit_ledger.domain.exceptions import ConcurrencyConflict

T = TypeVar("T")


def run_with_retry(
    operation: Callable[[], T],
    attempts: int | None = None,
    backoff_base: float | None = None,
) -> T:
    """
    Run a whole ledger operation, retrying only on ConcurrencyConflict.

    Retry strategy:
    - Exponential backoff: base, 2*base, 4*base, ...
    - Every other error propagates immediately; they need corrected input
    """
    attempts = attempts or settings.conflict_retry_attempts
    backoff_base = settings.conflict_backoff_base if backoff_base is None else backoff_base

    attempt = 0
    while True:
        try:
            return operation()
        except ConcurrencyConflict:
            attempt += 1
            if attempt >= attempts:
                raise

            backoff = backoff_base * (2 ** (attempt - 1))
            logging.info(f"Retrying after ledger conflict (attempt {attempt}/{attempts}) in {backoff:.2f}s")
            time.sleep(backoff)
