"""Storage transaction runner with bounded retry on conflicts"""

import logging
import time
from typing import Callable, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from contas_gateway.config import settings
from contas_gateway.domain.exceptions import TransientFailure
from contas_gateway.infrastructure.observability.metrics import transaction_retry_counter

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_in_transaction(
    db: Session,
    operation: str,
    work: Callable[[], T],
    max_retries: int | None = None,
    backoff_base: float | None = None,
) -> T:
    """
    Run ``work`` and commit, rolling back on any failure.

    Retry strategy:
    - Only storage conflicts (OperationalError: serialization failure,
      deadlock, locked database) are retried, with the same inputs
    - Every attempt starts from a clean rollback, so a retried payment can
      never leave a second ledger entry behind
    - Exponential backoff: base, 2*base, 4*base...
    - Domain errors roll back and propagate immediately

    Raises:
        TransientFailure: conflicts persisted after ``max_retries`` attempts
    """
    max_retries = max_retries or settings.transaction_max_retries
    backoff_base = settings.transaction_backoff_base if backoff_base is None else backoff_base

    attempt = 0
    while True:
        try:
            result = work()
            db.commit()
            return result

        except OperationalError as e:
            db.rollback()
            attempt += 1
            transaction_retry_counter.labels(operation=operation).inc()

            if attempt >= max_retries:
                logger.error(
                    f"Transaction failed after {attempt} attempts: {e}",
                    extra={"operation": operation},
                )
                raise TransientFailure(f"{operation} could not be completed, try again") from e

            backoff = backoff_base * (2 ** (attempt - 1))
            logger.warning(
                f"Transaction conflict, retrying in {backoff}s",
                extra={"operation": operation, "attempt": attempt},
            )
            time.sleep(backoff)

        except Exception:
            db.rollback()
            raise
