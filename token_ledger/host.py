"""
Host Capabilities Module

The ledger never verifies signatures or decides which accounts exist; those
are capabilities of the host environment, injected here as an Authorizer and
an AccountDirectory.
"""

from abc import ABC, abstractmethod
from typing import Dict, FrozenSet, Iterable, Optional, Set
import re
import threading

from .errors import Unauthorized

_NAME_PATTERN = re.compile(r"^[a-z1-5.]{1,12}$")


def is_valid_name(name: str) -> bool:
    """Account names: 1-12 chars of a-z, 1-5 and '.', not ending in '.'"""
    return isinstance(name, str) and bool(_NAME_PATTERN.match(name)) and not name.endswith(".")


class Authorizer(ABC):
    """Answers whether the current action carries an identity's authority"""

    @abstractmethod
    def has(self, identity: str) -> bool:
        pass

    def require(self, identity: str) -> None:
        """Raise Unauthorized unless `identity` authorized the current action"""
        if not self.has(identity):
            raise Unauthorized(f"missing authority of {identity}")


class SignedAuthorizer(Authorizer):
    """Authorizer backed by the set of identities that signed the action"""

    def __init__(self, signers: Iterable[str]):
        self.signers: FrozenSet[str] = frozenset(signers)

    def has(self, identity: str) -> bool:
        return identity in self.signers

    def __repr__(self) -> str:
        return f"SignedAuthorizer({sorted(self.signers)})"


class AccountDirectory(ABC):
    """Host view of which accounts exist and which contracts may act for them"""

    @abstractmethod
    def is_account(self, name: str) -> bool:
        pass

    @abstractmethod
    def grants_code(self, owner: str, contract: str) -> bool:
        """True if `owner` lets `contract` send calls under owner's authority"""
        pass


class InMemoryAccountDirectory(AccountDirectory):
    """Account directory held in memory, for tests and embedded use"""

    def __init__(self, accounts: Optional[Iterable[str]] = None):
        self._accounts: Set[str] = set()
        self._code_grants: Dict[str, Set[str]] = {}
        self._lock = threading.RLock()
        for name in accounts or []:
            self.add_account(name)

    def add_account(self, name: str) -> None:
        if not is_valid_name(name):
            raise ValueError(f"invalid account name '{name}'")
        with self._lock:
            self._accounts.add(name)

    def grant_code(self, owner: str, contract: str) -> None:
        """Let `contract` use `owner`'s authority on forwarded calls"""
        with self._lock:
            if owner not in self._accounts:
                raise ValueError(f"account {owner} does not exist")
            self._code_grants.setdefault(owner, set()).add(contract)

    def is_account(self, name: str) -> bool:
        with self._lock:
            return name in self._accounts

    def grants_code(self, owner: str, contract: str) -> bool:
        with self._lock:
            return contract in self._code_grants.get(owner, set())
