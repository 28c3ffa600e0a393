"""
conftest.py - Shared pytest fixtures for txledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Deterministic fake signer and a seeded Ed25519 wallet
- Basic ledgers (empty, funded)
"""

import pytest

from txledger import Ledger, SignedInput, Wallet

from tests.fake_signer import FakeSigner


PEOPLE = ["alice", "bob", "carol", "david"]


# =============================================================================
# SIGNER FIXTURES
# =============================================================================

@pytest.fixture
def signer():
    """Fake signer holding keys for alice, bob, carol and david."""
    return FakeSigner(set(PEOPLE))


@pytest.fixture
def wallet():
    """Seeded Ed25519 wallet with keys A1, A2, B1, B2, C1, C2, C3, D1."""
    return Wallet.generate(["A1", "A2", "B1", "B2", "C1", "C2", "C3", "D1"], seed=b"txledger-tests")


# =============================================================================
# LEDGER FIXTURES
# =============================================================================

@pytest.fixture
def empty_ledger():
    """Fresh ledger with no balances."""
    return Ledger("test", verbose=False)


@pytest.fixture
def funded_ledger():
    """Ledger with alice=25, bob=15, carol=10."""
    return Ledger("test", {"alice": 25, "bob": 15, "carol": 10}, verbose=False)


@pytest.fixture
def wallet_ledger(wallet):
    """Ledger keyed by wallet public keys, every key at 0, then A1=20, B1=15, C1=10."""
    ledger = Ledger("wallet", verbose=False)
    for name in wallet.names():
        ledger.add_account(wallet.get_public_key(name), 0)
    ledger.set_balance(wallet.get_public_key("A1"), 20)
    ledger.set_balance(wallet.get_public_key("B1"), 15)
    ledger.set_balance(wallet.get_public_key("C1"), 10)
    return ledger


@pytest.fixture
def forged_input():
    """An input for alice whose signature was never produced by her key."""
    return SignedInput("alice", 25, b"\x00" * 32)
