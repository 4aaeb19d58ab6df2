import asyncio
from typing import Dict, List, Optional
import structlog

from account import Account
from ledger import Ledger
from models import AccountSnapshot, Event

logger = structlog.get_logger()


class LedgerService:
    """Asynchronous front of a Ledger with one worker task per account.

    Admission (the transaction id check and routing) runs under a single
    lock, so events are queued in the order they were submitted. Each
    account drains its own FIFO queue, which keeps per-client order while
    different clients are applied independently.
    """

    def __init__(self, ledger: Ledger):
        self.ledger = ledger
        self._admission_lock = asyncio.Lock()
        self._queues: Dict[int, asyncio.Queue] = {}
        self._workers: Dict[int, asyncio.Task] = {}

    async def submit(self, event: Event) -> None:
        """Admit an event and queue it for its account.

        Raises DuplicateEventIdError when the transaction id was already
        admitted; nothing is queued in that case.
        """
        async with self._admission_lock:
            account = self.ledger.admit(event)
            await self._queue_for(account).put(event)

    async def drain(self) -> None:
        """Wait until every queued event has been applied."""
        await asyncio.gather(*(queue.join() for queue in list(self._queues.values())))

    async def snapshot_all(self) -> List[AccountSnapshot]:
        async with self._admission_lock:
            await self.drain()
            return self.ledger.snapshot_all()

    async def close(self) -> None:
        """Apply everything still queued, then stop the workers."""
        async with self._admission_lock:
            await self.drain()
            for worker in self._workers.values():
                worker.cancel()
            await asyncio.gather(*self._workers.values(), return_exceptions=True)
            self._workers.clear()
            self._queues.clear()

        logger.debug("Ledger service closed", accounts_count=self.ledger.accounts_count)

    def _queue_for(self, account: Account) -> asyncio.Queue:
        queue = self._queues.get(account.id)
        if queue is None:
            queue = asyncio.Queue()
            self._queues[account.id] = queue
            self._workers[account.id] = asyncio.create_task(
                self._run_worker(account, queue),
                name=f"account-{account.id}"
            )
        return queue

    async def _run_worker(self, account: Account, queue: asyncio.Queue) -> None:
        while True:
            event = await queue.get()
            try:
                account.apply(event)
            except Exception:
                # the remaining events for this client must still be applied
                logger.error(
                    "Failed to apply event",
                    client_id=account.id,
                    tx=event.tx,
                    type=event.type.value,
                    exc_info=True
                )
            finally:
                queue.task_done()


# Factory function for dependency injection
def create_ledger_service(ledger: Optional[Ledger] = None) -> LedgerService:
    return LedgerService(ledger or Ledger())
