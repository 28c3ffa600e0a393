"""
ledger.py - Stateful Account-Balance Ledger

The Ledger class is the central state manager of the transaction ledger.
It is the only module that mutates balances, ensuring controlled and
auditable changes.

Key responsibilities:
    - Implements the LedgerView protocol for read-only access by validation
    - Checks aggregated affordability of debit batches
    - Applies transactions atomically (every debit and credit, or none)
    - Serializes check-then-apply behind a lock so two transactions cannot
      both spend the same funds
"""

from __future__ import annotations
from threading import RLock
from typing import Dict, List, Mapping, Optional

from .core import (
    # Types
    EntryBatch, Transaction, ValidationReport, ExecuteResult,
    Identity, AggregatedBalance, SigningService, IdentityDirectory,
    # Constants
    MAX_AMOUNT,
    # Exceptions
    ValidationError, AmountOverflow, InvalidTransaction,
)


def _check_int(value, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{what} must be an int, got {type(value).__name__}")
    return value


class Ledger:
    """
    Mapping from identity to integer balance, with transaction validation.

    Unknown identities have balance 0. Balances are kept in a single
    insertion-ordered dict, so listing and printing follow the order in
    which identities were first given a balance.

    The low-level mutators (set_balance, add_balance, subtract_balance) are
    unconditional. Callers use can_deduct() or check_valid() first, or go
    through apply_transaction()/execute(), which do both under the lock.

    Thread Safety:
        All mutators and the check-then-apply in apply_transaction() and
        execute() hold an internal lock.

    Example:
        ledger = Ledger("main", {"alice": 25})
        outputs = EntryBatch.of("bob", 5, "carol", 20)
        tx = build_transaction([("alice", 25)], outputs, wallet)
        ledger.execute(tx, wallet)   # ExecuteResult.APPLIED
    """

    def __init__(
        self,
        name: str = "main",
        initial_balances: Optional[Mapping[Identity, int]] = None,
        verbose: bool = True,
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier, used in printed output
            initial_balances: Optional starting balances
            verbose: Print transaction outcomes (default: True)
        """
        self.name = name
        self.verbose = verbose
        self._balances: Dict[Identity, int] = {}
        self.transaction_log: List[Transaction] = []
        self._lock = RLock()
        for identity, balance in (initial_balances or {}).items():
            self.set_balance(identity, balance)

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    def get_balance(self, identity: Identity) -> int:
        """Balance of identity; 0 if it has never been given one."""
        return self._balances.get(identity, 0)

    def has_identity(self, identity: Identity) -> bool:
        return identity in self._balances

    def identities(self) -> List[Identity]:
        """Identities in the order they were added."""
        with self._lock:
            return list(self._balances)

    def check_balance(self, identity: Identity, amount: int) -> bool:
        """True if identity holds at least amount."""
        return self.get_balance(identity) >= amount

    def can_deduct(self, aggregated: AggregatedBalance) -> bool:
        """
        Check that every aggregated amount is covered by the current balance.

        The argument must already be aggregated per identity. Checking the
        entries of a batch one by one would accept [("alice", 15),
        ("alice", 15)] against a balance of 20; the aggregate of 30 is
        correctly rejected here.
        """
        return all(
            self.get_balance(identity) >= amount
            for identity, amount in aggregated.items()
        )

    def can_deduct_batch(self, batch: EntryBatch) -> bool:
        return self.can_deduct(batch.to_aggregated_balance())

    def total_balance(self) -> int:
        """Sum of all balances."""
        with self._lock:
            return sum(self._balances.values())

    def as_dict(self) -> Dict[Identity, int]:
        """A copy of the balances, in insertion order."""
        with self._lock:
            return dict(self._balances)

    # ========================================================================
    # BALANCE MUTATORS
    # ========================================================================

    def set_balance(self, identity: Identity, amount: int) -> None:
        """
        Overwrite the balance of identity, creating it if absent.

        Raises:
            ValidationError: If amount is not an int
            AmountOverflow: If amount exceeds MAX_AMOUNT
        """
        _check_int(amount, "balance")
        if amount > MAX_AMOUNT:
            raise AmountOverflow(f"balance {amount} exceeds MAX_AMOUNT")
        with self._lock:
            self._balances[identity] = amount

    # Alias kept for callers that register accounts with a starting balance.
    add_account = set_balance

    def add_balance(self, identity: Identity, amount: int) -> None:
        """Increase the balance of identity by amount (creates it if absent)."""
        _check_int(amount, "amount")
        with self._lock:
            self.set_balance(identity, self.get_balance(identity) + amount)

    def subtract_balance(self, identity: Identity, amount: int) -> None:
        """
        Decrease the balance of identity by amount.

        No underflow check: the result may be negative. Use can_deduct()
        before calling.
        """
        _check_int(amount, "amount")
        with self._lock:
            self.set_balance(identity, self.get_balance(identity) - amount)

    def apply_debit(self, batch: EntryBatch) -> bool:
        """
        Subtract every entry of batch from the matching balance.

        Fails closed: if the aggregated batch cannot be deducted, nothing is
        changed and False is returned.

        Returns:
            True if the debit was applied, False otherwise
        """
        with self._lock:
            if not self.can_deduct_batch(batch):
                if self.verbose:
                    print(f"✗ DEBIT REJECTED on {self.name}: insufficient balance for {batch!r}")
                return False
            for entry in batch:
                self.subtract_balance(entry.identity, entry.amount)
            return True

    def apply_credit(self, batch: EntryBatch) -> None:
        """
        Add every entry of batch to the matching balance.

        Crediting is unconditional, but the resulting balances are computed
        before any is written.

        Raises:
            AmountOverflow: If a resulting balance would exceed MAX_AMOUNT.
                            No balance is changed in that case.
        """
        with self._lock:
            self._commit(self._stage(EntryBatch(), batch))

    # ========================================================================
    # TRANSACTIONS
    # ========================================================================

    def check_transaction(self, tx: Transaction, signer: SigningService) -> ValidationReport:
        """Validate tx against current balances; see Transaction.validate()."""
        with self._lock:
            return tx.validate(self, signer)

    def check_valid(self, tx: Transaction, signer: SigningService) -> bool:
        return self.check_transaction(tx, signer).ok

    def apply_transaction(self, tx: Transaction, signer: SigningService) -> None:
        """
        Validate tx and apply it atomically.

        Validation and application happen under one lock acquisition, so no
        other transaction can spend the same funds in between. All resulting
        balances are computed before any is written.

        Raises:
            InvalidTransaction: If tx is not valid against this ledger
            AmountOverflow: If a credit would push a balance past MAX_AMOUNT
        """
        with self._lock:
            report = tx.validate(self, signer)
            if not report.ok:
                if self.verbose:
                    print(f"✗ REJECTED on {self.name}: {'; '.join(report.reasons)}")
                raise InvalidTransaction(report)
            self._commit(self._stage(tx.to_inputs(), tx.to_outputs()))
            self.transaction_log.append(tx)
        if self.verbose:
            print(repr(tx))
            print(f"✓ APPLIED on {self.name}")

    def execute(self, tx: Transaction, signer: SigningService) -> ExecuteResult:
        """
        Apply tx if it is valid.

        Non-raising counterpart of apply_transaction() for hosts that
        process transactions in bulk. Amounts that overflow MAX_AMOUNT, in
        the inputs total or in a credited balance, also count as rejection.

        Returns:
            ExecuteResult.APPLIED if tx was applied
            ExecuteResult.REJECTED if validation failed or an amount
            overflowed (ledger unchanged)
        """
        try:
            self.apply_transaction(tx, signer)
        except InvalidTransaction:
            return ExecuteResult.REJECTED
        except AmountOverflow as e:
            if self.verbose:
                print(f"✗ REJECTED on {self.name}: {e}")
            return ExecuteResult.REJECTED
        return ExecuteResult.APPLIED

    def _stage(self, debits: EntryBatch, credits: EntryBatch) -> Dict[Identity, int]:
        """
        Compute new balances for every identity touched by debits and credits.

        Debited identities come first, then credited ones, each in first-seen
        order, matching the order a debit-then-credit would add them.
        """
        staged: Dict[Identity, int] = {}
        for identity, amount in debits.to_aggregated_balance().items():
            staged[identity] = staged.get(identity, self.get_balance(identity)) - amount
        for entry in credits:
            new_balance = staged.get(entry.identity, self.get_balance(entry.identity)) + entry.amount
            if new_balance > MAX_AMOUNT:
                raise AmountOverflow(
                    f"balance of {entry.identity!r} would exceed MAX_AMOUNT"
                )
            staged[entry.identity] = new_balance
        return staged

    def _commit(self, staged: Dict[Identity, int]) -> None:
        for identity, balance in staged.items():
            self._balances[identity] = balance

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> Ledger:
        """
        Create an independent copy of this ledger.

        Balances and the transaction log are copied. Transactions are
        immutable, so the log entries are shared.
        """
        with self._lock:
            cloned = Ledger(self.name, verbose=self.verbose)
            cloned._balances = dict(self._balances)
            cloned.transaction_log = list(self.transaction_log)
        return cloned

    def format_balances(self, directory: Optional[IdentityDirectory] = None) -> str:
        """One line per identity, in insertion order, named through directory."""
        lines = []
        for identity, balance in self.as_dict().items():
            name = directory.display_name(identity) if directory is not None else str(identity)
            lines.append(f"The balance for {name} is {balance}")
        return "\n".join(lines)

    def print_balances(self, directory: Optional[IdentityDirectory] = None) -> None:
        print(self.format_balances(directory))

    def __repr__(self) -> str:
        return f"Ledger({self.name!r}, {len(self._balances)} identities, total={self.total_balance()})"
