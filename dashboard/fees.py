# dashboard/fees.py
"""
Tracks the issuance fee of the currently selected organization.

Every selection starts a new lookup on a worker thread. Lookups are tagged
with the selection generation they were started for; when the selection
changes the previous lookup is cancelled, and a result that still arrives
for an older generation is dropped instead of overwriting the current one.
"""
import logging
import threading
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Optional

from dashboard.chain import ChainError, PaymentGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeeQuote:
    organization_id: Optional[str] = None
    fee: Optional[int] = None
    error: Optional[str] = None
    loading: bool = False


class FeeTracker:
    def __init__(self, gateway: Optional[PaymentGateway], executor: Optional[Executor] = None, max_workers: int = 2):
        self.gateway = gateway
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fee-lookup")
        self._owns_executor = executor is None
        self._lock = threading.Lock()
        self._generation = 0
        self._pending: Optional[Future] = None
        self._quote = FeeQuote()

    @property
    def quote(self) -> FeeQuote:
        with self._lock:
            return self._quote

    def select(self, organization: Optional[Dict]) -> Optional[Future]:
        """Switches the tracked organization and starts its fee lookup."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None

            if not organization:
                self._quote = FeeQuote()
                return None
            organization_id = organization.get("_id")
            if self.gateway is None or not self.gateway.is_ready():
                self._quote = FeeQuote(organization_id=organization_id)
                return None

            self._quote = FeeQuote(organization_id=organization_id, loading=True)
            future = self._executor.submit(self.gateway.get_issuance_fee, organization.get("walletAddress"))
            self._pending = future

        future.add_done_callback(lambda f: self._apply(generation, organization_id, f))
        return future

    def _apply(self, generation: int, organization_id: str, future: Future) -> None:
        try:
            fee = future.result()
            quote = FeeQuote(organization_id=organization_id, fee=fee)
        except CancelledError:
            return
        except ChainError as e:
            quote = FeeQuote(organization_id=organization_id, error=str(e))
        except Exception as e:
            logger.exception(f"Unexpected error fetching the issuance fee for {organization_id}")
            quote = FeeQuote(organization_id=organization_id, error=f"Failed to fetch fee: {e}")

        with self._lock:
            if generation != self._generation:
                logger.debug(f"Discarding stale fee lookup for organization {organization_id}")
                return
            self._quote = quote
            self._pending = None

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
