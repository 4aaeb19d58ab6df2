from dataclasses import dataclass
from decimal import Context, Decimal, DivisionByZero, Inexact, InvalidOperation, Overflow
from typing import Dict
import structlog

from models import AccountSnapshot, Event, EventType, AMOUNT_MAX_DIGITS

logger = structlog.get_logger()

# Wide enough for 2**32 deposits of the largest amount; Inexact traps any rounding.
BALANCE_CONTEXT = Context(
    prec=AMOUNT_MAX_DIGITS + 12,
    traps=[Inexact, InvalidOperation, Overflow, DivisionByZero]
)


@dataclass
class DepositRecord:
    amount: Decimal
    disputed: bool = False


class Account:
    """One client's balances and the deposits that may still be disputed.

    Every mutator is total: an operation that would break an invariant
    (negative balances, movement on a locked account, unknown or
    wrongly-staged disputes) leaves the account untouched and returns
    normally.
    """

    def __init__(self, client_id: int):
        self.id = client_id
        self.deposits: Dict[int, DepositRecord] = {}
        self.available = Decimal(0)
        self.held = Decimal(0)
        self.locked = False

    @property
    def total(self) -> Decimal:
        return BALANCE_CONTEXT.add(self.available, self.held)

    def apply(self, event: Event) -> None:
        """Apply one event routed to this account."""
        if event.type == EventType.deposit:
            self.deposit(event.tx, event.amount)
        elif event.type == EventType.withdrawal:
            self.withdraw(event.amount)
        elif event.type == EventType.dispute:
            self.dispute(event.tx)
        elif event.type == EventType.resolve:
            self.resolve(event.tx)
        elif event.type == EventType.chargeback:
            self.chargeback(event.tx)

    def deposit(self, tx: int, amount: Decimal) -> None:
        if amount < 0:
            self._ignored("deposit", tx=tx, reason="negative amount", amount=str(amount))
            return
        self.deposits[tx] = DepositRecord(amount)
        self.available = BALANCE_CONTEXT.add(self.available, amount)

    def withdraw(self, amount: Decimal) -> None:
        if self.locked:
            self._ignored("withdrawal", reason="account locked", amount=str(amount))
            return
        if amount < 0:
            self._ignored("withdrawal", reason="negative amount", amount=str(amount))
            return
        new_available = BALANCE_CONTEXT.subtract(self.available, amount)
        if new_available < 0:
            self._ignored(
                "withdrawal",
                reason="insufficient funds",
                amount=str(amount),
                available=str(self.available)
            )
            return
        self.available = new_available

    def dispute(self, tx: int) -> None:
        record = self.deposits.get(tx)
        if record is None:
            self._ignored("dispute", tx=tx, reason="unknown deposit")
            return
        if record.disputed:
            self._ignored("dispute", tx=tx, reason="already disputed")
            return
        # holds are only placed on funds that are still available
        if self.available < record.amount:
            self._ignored(
                "dispute",
                tx=tx,
                reason="insufficient available funds",
                amount=str(record.amount),
                available=str(self.available)
            )
            return
        record.disputed = True
        self.available = BALANCE_CONTEXT.subtract(self.available, record.amount)
        self.held = BALANCE_CONTEXT.add(self.held, record.amount)

    def resolve(self, tx: int) -> None:
        record = self.deposits.get(tx)
        if record is None or not record.disputed:
            self._ignored("resolve", tx=tx, reason="deposit not under dispute")
            return
        record.disputed = False
        self.available = BALANCE_CONTEXT.add(self.available, record.amount)
        self.held = BALANCE_CONTEXT.subtract(self.held, record.amount)

    def chargeback(self, tx: int) -> None:
        record = self.deposits.get(tx)
        if record is None or not record.disputed:
            self._ignored("chargeback", tx=tx, reason="deposit not under dispute")
            return
        record.disputed = False
        self.held = BALANCE_CONTEXT.subtract(self.held, record.amount)
        self.locked = True

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            client=self.id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked
        )

    def _ignored(self, operation: str, **details) -> None:
        logger.debug("Operation ignored", client_id=self.id, operation=operation, **details)
