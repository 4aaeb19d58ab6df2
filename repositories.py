from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set

from account import Account


class AccountRepository(ABC):
    @abstractmethod
    def get_account(self, client_id: int) -> Optional[Account]:
        """Get account by client id. Returns None if it was never referenced."""
        pass

    @abstractmethod
    def add_account(self, account: Account) -> None:
        """Store a newly created account."""
        pass

    @abstractmethod
    def list_accounts(self) -> List[Account]:
        """Get every stored account, in no particular order."""
        pass

    @abstractmethod
    def get_accounts_count(self) -> int:
        """Get total number of accounts."""
        pass


class EventIdRepository(ABC):
    @abstractmethod
    def contains(self, event_id: int) -> bool:
        """Check whether a transaction id was already admitted."""
        pass

    @abstractmethod
    def add(self, event_id: int) -> None:
        """Record a transaction id as admitted."""
        pass

    @abstractmethod
    def get_events_count(self) -> int:
        """Get total number of admitted transaction ids."""
        pass


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts: Dict[int, Account] = {}

    def get_account(self, client_id: int) -> Optional[Account]:
        return self.accounts.get(client_id)

    def add_account(self, account: Account) -> None:
        if account.id in self.accounts:
            raise ValueError(f"Account {account.id} already exists")
        self.accounts[account.id] = account

    def list_accounts(self) -> List[Account]:
        return list(self.accounts.values())

    def get_accounts_count(self) -> int:
        return len(self.accounts)


class InMemoryEventIdRepository(EventIdRepository):
    def __init__(self):
        self.event_ids: Set[int] = set()

    def contains(self, event_id: int) -> bool:
        return event_id in self.event_ids

    def add(self, event_id: int) -> None:
        self.event_ids.add(event_id)

    def get_events_count(self) -> int:
        return len(self.event_ids)
