"""
txledger - Signed-Transaction Account Ledger

An in-process account-balance ledger that validates and applies
cryptocurrency-style transactions: signed inputs debit identities, outputs
credit them, and a transaction applies completely or not at all.

Usage:
    from txledger import Ledger, EntryBatch, Wallet, build_transaction

    wallet = Wallet.generate(["alice", "bob", "carol"])
    alice = wallet.get_public_key("alice")
    bob = wallet.get_public_key("bob")
    carol = wallet.get_public_key("carol")

    ledger = Ledger("main", {alice: 25})
    outputs = EntryBatch.of(bob, 5, carol, 20)
    tx = build_transaction([(alice, 25)], outputs, wallet)

    if tx.check_valid(ledger, wallet):
        tx.apply(ledger, wallet)
    ledger.print_balances(wallet.to_public_key_map())
"""

# Core types
from .core import (
    Identity,
    AggregatedBalance,
    Entry,
    EntryBatch,
    SignedInput,
    Transaction,
    ValidationReport,
    ExecuteResult,
    SigningService,
    IdentityDirectory,
    LedgerView,
    build_transaction,
    message_to_sign,
    identity_bytes,
    LedgerError,
    ValidationError,
    AmountOverflow,
    UnknownIdentity,
    InvalidTransaction,
    MAX_AMOUNT,
    SIGNATURE_DOMAIN,
)

# Ledger
from .ledger import Ledger

# Keys and wallets
from .wallet import (
    PublicKey,
    PublicKeyMap,
    Wallet,
    verify_signature,
)

__all__ = [
    # Core
    'Identity', 'AggregatedBalance', 'Entry', 'EntryBatch', 'SignedInput',
    'Transaction', 'ValidationReport', 'ExecuteResult',
    'SigningService', 'IdentityDirectory', 'LedgerView',
    'build_transaction', 'message_to_sign', 'identity_bytes',
    'LedgerError', 'ValidationError', 'AmountOverflow', 'UnknownIdentity',
    'InvalidTransaction', 'MAX_AMOUNT', 'SIGNATURE_DOMAIN',
    # Ledger
    'Ledger',
    # Keys and wallets
    'PublicKey', 'PublicKeyMap', 'Wallet', 'verify_signature',
]

__version__ = '1.0.0'
