from typing import List, Optional

from account import Account
from exceptions import DuplicateEventIdError
from models import AccountSnapshot, Event
from repositories import (
    AccountRepository,
    EventIdRepository,
    InMemoryAccountRepository,
    InMemoryEventIdRepository,
)


class Ledger:
    """Routes events to per-client accounts.

    Transaction ids of deposits and withdrawals must be unique across all
    clients. Disputes, resolves and chargebacks reuse the id of the deposit
    they refer to, so they are routed without being recorded.
    """

    def __init__(
        self,
        account_repo: Optional[AccountRepository] = None,
        event_id_repo: Optional[EventIdRepository] = None
    ):
        self.account_repo = account_repo or InMemoryAccountRepository()
        self.event_id_repo = event_id_repo or InMemoryEventIdRepository()

    def admit(self, event: Event) -> Account:
        """Check the event id and return the account it belongs to.

        Raises DuplicateEventIdError without touching any account when the
        id was seen before. Accounts are created with zero balances on
        first reference.
        """
        if event.type.carries_amount:
            if self.event_id_repo.contains(event.tx):
                raise DuplicateEventIdError(event.tx)
            self.event_id_repo.add(event.tx)

        account = self.account_repo.get_account(event.client)
        if account is None:
            account = Account(event.client)
            self.account_repo.add_account(account)
        return account

    def submit(self, event: Event) -> None:
        self.admit(event).apply(event)

    def snapshot_all(self) -> List[AccountSnapshot]:
        return [account.snapshot() for account in self.account_repo.list_accounts()]

    @property
    def accounts_count(self) -> int:
        return self.account_repo.get_accounts_count()

    @property
    def events_admitted(self) -> int:
        return self.event_id_repo.get_events_count()
