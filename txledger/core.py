"""
Core types and pure functions for the transaction ledger.

This module provides the foundational data structures and protocols:
1. Protocols: SigningService, IdentityDirectory and LedgerView
2. Immutable data structures: Entry, EntryBatch, SignedInput, Transaction
3. Exceptions: LedgerError and domain-specific error types
4. Type aliases: Identity, AggregatedBalance
5. Canonical encoding of the payload a SignedInput signs

Nothing in this module mutates ledger state. Transaction.apply() delegates
to the Ledger, which is the only place balances change.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Dict, Hashable, Iterator, List, Optional, Protocol, Tuple,
    TYPE_CHECKING, runtime_checkable,
)

if TYPE_CHECKING:
    from .ledger import Ledger


# ============================================================================
# CONSTANTS
# ============================================================================

# Largest amount or balance the ledger accepts. Amounts are encoded as
# 8-byte big-endian integers in signed payloads, so every amount, every
# per-identity sum and every balance must stay within a signed 64-bit range.
MAX_AMOUNT = 2**63 - 1

# Prefix of every signed payload. Keeps transaction signatures from being
# confused with signatures over unrelated messages made with the same key.
SIGNATURE_DOMAIN = b"txledger/v1/outputs"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# An account key. Any hashable value with value equality: str, bytes, or a
# PublicKey. Anything signed over must also be encodable (see identity_bytes).
Identity = Hashable

# Mapping from identity to the summed amount of all its entries in a batch.
# Each identity appears once, in first-seen order.
AggregatedBalance = Dict[Identity, int]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class ValidationError(LedgerError):
    """Raised when an entry or input is constructed with an unusable amount or identity."""
    pass


class AmountOverflow(LedgerError):
    """Raised when a sum of amounts or a resulting balance exceeds MAX_AMOUNT."""
    pass


class UnknownIdentity(LedgerError):
    """Raised when a signing service has no key for an identity, or a name has no public key."""
    pass


class InvalidTransaction(LedgerError):
    """
    Raised when applying a transaction that does not pass validation.

    The ledger is guaranteed to be unchanged when this is raised.
    The full diagnostic is available as ``report``.
    """

    def __init__(self, report: 'ValidationReport'):
        self.report = report
        super().__init__("; ".join(report.reasons) or "transaction rejected")


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class SigningService(Protocol):
    """
    Capability that signs and verifies byte payloads on behalf of identities.

    The ledger core only ever calls verify(). sign() is used by hosts and
    tests to produce SignedInputs.
    """

    def sign(self, identity: Identity, payload: bytes) -> bytes:
        """Sign payload with the private key belonging to identity."""
        ...

    def verify(self, identity: Identity, payload: bytes, signature: bytes) -> bool:
        """Return True if signature is a valid signature of payload by identity."""
        ...


@runtime_checkable
class IdentityDirectory(Protocol):
    """Maps identities to human-readable names. Used for reporting only."""

    def display_name(self, identity: Identity) -> str:
        ...


@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger balances.

    Transaction validation only needs these methods, so it accepts any
    LedgerView rather than requiring a full Ledger.
    """

    def get_balance(self, identity: Identity) -> int:
        """Return the balance of identity, 0 if the identity is unknown."""
        ...

    def can_deduct(self, aggregated: AggregatedBalance) -> bool:
        """Return True if every aggregated amount is covered by the current balance."""
        ...


class ExecuteResult(Enum):
    """
    Outcome of Ledger.execute().

    APPLIED: Transaction was validated and applied to the ledger.
    REJECTED: Transaction failed validation; the ledger is unchanged.
    """
    APPLIED = "applied"
    REJECTED = "rejected"


# ============================================================================
# AMOUNT AND IDENTITY HELPERS
# ============================================================================

def _check_amount(amount, what: str = "amount") -> int:
    """Return amount if it is an int in [0, MAX_AMOUNT], else raise ValidationError."""
    # bool is an int subclass; True is not a meaningful amount
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"{what} must be an int, got {type(amount).__name__}")
    if amount < 0:
        raise ValidationError(f"{what} must be non-negative, got {amount}")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{what} {amount} exceeds MAX_AMOUNT")
    return amount


def _check_identity(identity) -> Identity:
    if identity is None:
        raise ValidationError("identity cannot be None")
    try:
        hash(identity)
    except TypeError:
        raise ValidationError(f"identity must be hashable, got {type(identity).__name__}")
    return identity


def _checked_sum(total: int, amount: int) -> int:
    total += amount
    if total > MAX_AMOUNT:
        raise AmountOverflow(f"sum {total} exceeds MAX_AMOUNT")
    return total


def identity_bytes(identity: Identity) -> bytes:
    """
    Encode an identity for inclusion in a signed payload.

    bytes are used as-is, str is UTF-8 encoded, and any other object must
    implement __bytes__ (PublicKey does).

    Raises:
        ValidationError: If the identity has no byte encoding
    """
    if isinstance(identity, bytes):
        return identity
    if isinstance(identity, str):
        return identity.encode("utf-8")
    if hasattr(type(identity), "__bytes__"):
        return bytes(identity)
    raise ValidationError(f"identity of type {type(identity).__name__} has no byte encoding")


def _identity_field(identity: Identity) -> bytes:
    """
    Type tag, length prefix and encoding of an identity.

    The tag keeps "bob" and b"bob", or a PublicKey and its raw bytes,
    distinct in a payload. Objects also carry their type name.
    """
    encoded = identity_bytes(identity)
    if isinstance(identity, str):
        tag = b"s"
    elif isinstance(identity, bytes):
        tag = b"b"
    else:
        type_name = type(identity).__qualname__.encode("utf-8")
        tag = b"o" + len(type_name).to_bytes(2, "big") + type_name
    return tag + len(encoded).to_bytes(4, "big") + encoded


def _short(identity: Identity) -> str:
    text = repr(identity) if not isinstance(identity, str) else identity
    return text if len(text) <= 24 else text[:21] + "..."


# ============================================================================
# ENTRY BATCH
# ============================================================================

@dataclass(frozen=True, slots=True)
class Entry:
    """
    A single (identity, amount) pair.

    Attributes:
        identity: The account being debited or credited.
        amount: Non-negative integer amount.
    """
    identity: Identity
    amount: int

    def __post_init__(self):
        _check_identity(self.identity)
        _check_amount(self.amount)

    def __repr__(self) -> str:
        return f"Entry({_short(self.identity)}: {self.amount})"


@dataclass(frozen=True, slots=True)
class EntryBatch:
    """
    An ordered sequence of entries, used for both sides of a transaction.

    The same identity may appear several times; a batch means "pay this
    identity this amount", possibly repeated. It is never deduplicated.
    Use to_aggregated_balance() before checking a batch against balances.

    The batch is a value: append() returns a new batch.

    Example:
        outputs = EntryBatch().append("bob", 5).append("carol", 20)
        outputs.total_amount()            # 25
        EntryBatch.of("bob", 5, "bob", 5).to_aggregated_balance()  # {"bob": 10}
    """
    entries: Tuple[Entry, ...] = ()

    def __post_init__(self):
        entries = tuple(self.entries)
        for entry in entries:
            if not isinstance(entry, Entry):
                raise ValidationError(f"EntryBatch holds Entry objects, got {type(entry).__name__}")
        object.__setattr__(self, 'entries', entries)

    @classmethod
    def of(cls, *pairs) -> EntryBatch:
        """
        Build a batch from alternating identity, amount arguments.

        EntryBatch.of("alice", 15, "bob", 5) == EntryBatch().append("alice", 15).append("bob", 5)
        """
        if len(pairs) % 2:
            raise ValidationError("EntryBatch.of() needs identity, amount pairs")
        return cls(tuple(Entry(pairs[i], pairs[i + 1]) for i in range(0, len(pairs), 2)))

    def append(self, identity: Identity, amount: int) -> EntryBatch:
        """Return a new batch with (identity, amount) added at the end."""
        return EntryBatch(self.entries + (Entry(identity, amount),))

    def to_aggregated_balance(self) -> AggregatedBalance:
        """
        Sum amounts per identity.

        Keys keep first-seen order so printed output and tests are reproducible.

        Raises:
            AmountOverflow: If any identity's sum exceeds MAX_AMOUNT
        """
        aggregated: AggregatedBalance = {}
        for entry in self.entries:
            aggregated[entry.identity] = _checked_sum(
                aggregated.get(entry.identity, 0), entry.amount
            )
        return aggregated

    def total_amount(self) -> int:
        """
        Sum of all entry amounts.

        Raises:
            AmountOverflow: If the sum exceeds MAX_AMOUNT
        """
        total = 0
        for entry in self.entries:
            total = _checked_sum(total, entry.amount)
        return total

    def identities(self) -> List[Identity]:
        """Distinct identities in first-seen order."""
        return list(dict.fromkeys(entry.identity for entry in self.entries))

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)

    def __repr__(self) -> str:
        inner = ", ".join(f"{_short(e.identity)}: {e.amount}" for e in self.entries)
        return f"EntryBatch([{inner}])"


# ============================================================================
# SIGNED INPUTS
# ============================================================================

def message_to_sign(outputs: EntryBatch, amount: int) -> bytes:
    """
    Produce the canonical payload a SignedInput signs.

    Layout (all integers big-endian):
        SIGNATURE_DOMAIN
        4 bytes   number of output entries
        for each output entry, in batch order:
            1 byte    identity type tag: s (str), b (bytes) or o (object)
            for o only: 2-byte length and the type's qualified name
            4 bytes   length of the identity encoding
            n bytes   identity encoding (see identity_bytes)
            8 bytes   amount
        8 bytes   amount of the input being authorized

    Every field is length-prefixed or fixed-width, so two different
    (outputs, amount) pairs never encode to the same bytes. Changing any
    recipient, any output amount, the output order or the input amount
    changes the payload, including swapping a recipient for a different
    identity type with the same byte encoding.
    """
    amount = _check_amount(amount)
    parts = [SIGNATURE_DOMAIN, len(outputs).to_bytes(4, "big")]
    for entry in outputs:
        parts.append(_identity_field(entry.identity))
        parts.append(entry.amount.to_bytes(8, "big"))
    parts.append(amount.to_bytes(8, "big"))
    return b"".join(parts)


@dataclass(frozen=True, slots=True)
class SignedInput:
    """
    A debit entry together with the owner's authorization.

    Asserts: "identity authorizes spending amount, and the funds go exactly
    to these outputs". The signature covers message_to_sign(outputs, amount),
    so it cannot be replayed against different outputs or a different amount.

    Attributes:
        identity: The account being debited.
        amount: Non-negative integer amount debited.
        signature: Signature bytes produced by the identity's signing key.
    """
    identity: Identity
    amount: int
    signature: bytes = field(repr=False)

    def __post_init__(self):
        _check_identity(self.identity)
        _check_amount(self.amount)
        if not isinstance(self.signature, (bytes, bytearray)):
            raise ValidationError(
                f"signature must be bytes, got {type(self.signature).__name__}"
            )
        object.__setattr__(self, 'signature', bytes(self.signature))

    @classmethod
    def sign(
        cls,
        identity: Identity,
        amount: int,
        outputs: EntryBatch,
        signer: SigningService,
    ) -> SignedInput:
        """Create an input whose signature authorizes paying outputs with amount."""
        payload = message_to_sign(outputs, amount)
        return cls(identity, amount, signer.sign(identity, payload))

    def to_entry(self) -> Entry:
        """The debit entry with the signature stripped."""
        return Entry(self.identity, self.amount)

    def check_signature(self, outputs: EntryBatch, signer: SigningService) -> bool:
        """
        Verify that this input's signature authorizes paying outputs.

        Never raises for a bad signature: malformed signatures, identities
        without a byte encoding and verifier errors all yield False.
        """
        try:
            payload = message_to_sign(outputs, self.amount)
            return bool(signer.verify(self.identity, payload, self.signature))
        except Exception:
            return False

    def __repr__(self) -> str:
        return f"SignedInput({_short(self.identity)}: {self.amount}, sig={self.signature[:4].hex()}...)"


# ============================================================================
# TRANSACTIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class ValidationReport:
    """
    Result of validating a transaction against a ledger.

    All checks are evaluated, so a rejected transaction reports every
    reason it failed rather than only the first.

    Attributes:
        amounts_valid: Outputs total does not exceed inputs total.
        signatures_valid: Every input's signature covers the outputs.
        deductible: Aggregated inputs are covered by current balances.
        reasons: Human-readable description of each failed check.
    """
    amounts_valid: bool
    signatures_valid: bool
    deductible: bool
    reasons: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.amounts_valid and self.signatures_valid and self.deductible

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    A proposed atomic move of funds: debit signed inputs, credit outputs.

    A transaction is a pure value. It may be validated any number of times;
    applying it debits and credits again each time, so callers apply a given
    transaction to a ledger at most once.

    Attributes:
        inputs: Signed debits, summing to S_in.
        outputs: Credits, summing to S_out. Any S_in - S_out is burned.

    Example:
        outputs = EntryBatch.of("bob", 5, "carol", 20)
        tx = Transaction(
            inputs=(SignedInput.sign("alice", 25, outputs, wallet),),
            outputs=outputs,
        )
        if tx.check_valid(ledger, wallet):
            tx.apply(ledger, wallet)
    """
    inputs: Tuple[SignedInput, ...]
    outputs: EntryBatch

    def __post_init__(self):
        inputs = tuple(self.inputs)
        for tx_input in inputs:
            if not isinstance(tx_input, SignedInput):
                raise ValidationError(
                    f"Transaction inputs must be SignedInput, got {type(tx_input).__name__}"
                )
        object.__setattr__(self, 'inputs', inputs)
        if not isinstance(self.outputs, EntryBatch):
            raise ValidationError(
                f"Transaction outputs must be an EntryBatch, got {type(self.outputs).__name__}"
            )

    def to_inputs(self) -> EntryBatch:
        """The debit side as an EntryBatch (signatures stripped)."""
        return EntryBatch(tuple(tx_input.to_entry() for tx_input in self.inputs))

    def to_outputs(self) -> EntryBatch:
        return self.outputs

    def check_amounts_valid(self) -> bool:
        """Outputs may equal or under-spend the inputs, never exceed them."""
        return self.to_outputs().total_amount() <= self.to_inputs().total_amount()

    def check_signatures_valid(self, signer: SigningService) -> bool:
        return all(tx_input.check_signature(self.outputs, signer) for tx_input in self.inputs)

    def validate(self, ledger: LedgerView, signer: SigningService) -> ValidationReport:
        """
        Evaluate every validity check and collect the reasons for failure.

        Checks performed:
        1. Amounts: S_out <= S_in
        2. Signatures: each input signed the outputs and its own amount
        3. Affordability: the aggregated inputs can be deducted from ledger

        Raises:
            AmountOverflow: If a summation exceeds MAX_AMOUNT
        """
        reasons: List[str] = []

        total_in = self.to_inputs().total_amount()
        total_out = self.outputs.total_amount()
        amounts_valid = total_out <= total_in
        if not amounts_valid:
            reasons.append(f"outputs total {total_out} exceeds inputs total {total_in}")

        bad_inputs = [
            i for i, tx_input in enumerate(self.inputs)
            if not tx_input.check_signature(self.outputs, signer)
        ]
        signatures_valid = not bad_inputs
        if not signatures_valid:
            reasons.append(f"invalid signature on input(s) {bad_inputs}")

        aggregated = self.to_inputs().to_aggregated_balance()
        deductible = ledger.can_deduct(aggregated)
        if not deductible:
            short = [
                f"{_short(identity)} needs {amount}, has {ledger.get_balance(identity)}"
                for identity, amount in aggregated.items()
                if ledger.get_balance(identity) < amount
            ]
            reasons.append("insufficient balance: " + ", ".join(short))

        return ValidationReport(amounts_valid, signatures_valid, deductible, tuple(reasons))

    def check_valid(self, ledger: LedgerView, signer: SigningService) -> bool:
        return self.validate(ledger, signer).ok

    def apply(self, ledger: 'Ledger', signer: SigningService) -> None:
        """
        Validate and apply this transaction to ledger atomically.

        Raises:
            InvalidTransaction: If validation fails. The ledger is unchanged.
        """
        ledger.apply_transaction(self, signer)

    def __repr__(self) -> str:
        w = 72
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            f"┌{bar}┐",
            f"│{pad(' Transaction')}│",
            f"├{bar}┤",
            f"│{pad(' Inputs (' + str(len(self.inputs)) + '):')}│",
        ]
        for i, tx_input in enumerate(self.inputs):
            lines.append(f"│{pad(f'   [{i}] {_short(tx_input.identity)} -{tx_input.amount}')}│")
        lines.append(f"│{pad(' Outputs (' + str(len(self.outputs)) + '):')}│")
        for i, entry in enumerate(self.outputs):
            lines.append(f"│{pad(f'   [{i}] {_short(entry.identity)} +{entry.amount}')}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


def build_transaction(
    inputs: List[Tuple[Identity, int]],
    outputs: EntryBatch,
    signer: SigningService,
) -> Transaction:
    """
    Build a Transaction whose inputs are all signed by signer.

    This is the standard way to create transactions when the host holds the
    keys for every input.

    Args:
        inputs: (identity, amount) pairs to debit
        outputs: Credits the inputs pay for
        signer: Signing service holding the keys of every input identity

    Returns:
        A Transaction ready for validation
    """
    return Transaction(
        inputs=tuple(
            SignedInput.sign(identity, amount, outputs, signer)
            for identity, amount in inputs
        ),
        outputs=outputs,
    )
