#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Signed Transactions Step by Step

This is a pedagogical demonstration of how the transaction ledger works.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation   - Wallets, the public-key directory, the empty ledger
  4-6:   Balances     - Setting, adding and subtracting
  7-9:   Batches      - Why duplicate entries must be aggregated
  10-12: Signatures   - Signing outputs, forged signatures, full transactions

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from txledger import (
    Ledger, EntryBatch, SignedInput, Wallet, PublicKeyMap,
    ExecuteResult, build_transaction,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    seed: bytes = b"txledger-demo"
    alice_balance: int = 20
    bob_credit: int = 15
    bob_debit: int = 5
    carol_balance: int = 10


CONFIG = DemoConfig()
INTERACTIVE = "--quick" not in sys.argv


# ============================================================================
# HELPERS
# ============================================================================

def wait_for_enter():
    if INTERACTIVE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


# ============================================================================
# STEPS
# ============================================================================

def step_01_wallets():
    step_header(1, "Wallets", "Create key pairs for four participants.")
    wallets = {
        "alice": Wallet.generate(["A1", "A2"], seed=CONFIG.seed + b"/alice"),
        "bob": Wallet.generate(["B1", "B2"], seed=CONFIG.seed + b"/bob"),
        "carol": Wallet.generate(["C1", "C2", "C3"], seed=CONFIG.seed + b"/carol"),
        "david": Wallet.generate(["D1"], seed=CONFIG.seed + b"/david"),
    }
    for owner, wallet in wallets.items():
        print(f"{owner:6s}: {wallet.names()}")
    wait_for_enter()
    return wallets


def step_02_directory(wallets):
    step_header(2, "Public-key directory", "Merge every wallet's public keys into one map.")
    key_map = PublicKeyMap()
    for wallet in wallets.values():
        key_map.add_public_key_map(wallet.to_public_key_map())
    for user in key_map.users():
        print(f"{user}: {key_map.get_public_key(user).hex()[:16]}...")
    wait_for_enter()
    return key_map


def step_03_empty_ledger(key_map):
    step_header(3, "Empty ledger", "Open an account with balance 0 for every key.")
    ledger = Ledger("demo")
    for user in key_map.users():
        ledger.add_account(key_map.get_public_key(user), 0)
    ledger.print_balances(key_map)
    wait_for_enter()
    return ledger


def step_04_to_06_balances(ledger, key_map):
    a1 = key_map.get_public_key("A1")
    b1 = key_map.get_public_key("B1")
    c1 = key_map.get_public_key("C1")

    step_header(4, "Set a balance", f"A1 := {CONFIG.alice_balance}")
    ledger.set_balance(a1, CONFIG.alice_balance)
    print(f"A1: {ledger.get_balance(a1)}")
    wait_for_enter()

    step_header(5, "Add and subtract", f"B1 += {CONFIG.bob_credit}, then B1 -= {CONFIG.bob_debit}")
    ledger.add_balance(b1, CONFIG.bob_credit)
    print(f"B1: {ledger.get_balance(b1)}")
    ledger.subtract_balance(b1, CONFIG.bob_debit)
    print(f"B1: {ledger.get_balance(b1)}")
    wait_for_enter()

    step_header(6, "Another account", f"C1 := {CONFIG.carol_balance}")
    ledger.set_balance(c1, CONFIG.carol_balance)
    print(f"C1: {ledger.get_balance(c1)}")
    wait_for_enter()


def step_07_to_09_batches(ledger, key_map):
    a1 = key_map.get_public_key("A1")
    b1 = key_map.get_public_key("B1")

    step_header(7, "A deductible batch", "[(A1, 15), (B1, 5)] against A1=20, B1=10")
    txil1 = EntryBatch.of(a1, 15, b1, 5)
    print(f"can deduct: {ledger.can_deduct_batch(txil1)}")
    wait_for_enter()

    step_header(8, "Duplicate entries", "[(A1, 15), (A1, 15)]: each fits, the sum does not")
    txil2 = EntryBatch.of(a1, 15, a1, 15)
    print(f"aggregated: {[(key_map.display_name(k), v) for k, v in txil2.to_aggregated_balance().items()]}")
    print(f"can deduct: {ledger.can_deduct_batch(txil2)}")
    wait_for_enter()

    step_header(9, "Debit, then credit", "Subtract the first batch, credit A1 twice with 15")
    print(f"before: A1={ledger.get_balance(a1)} B1={ledger.get_balance(b1)}")
    ledger.apply_debit(txil1)
    print(f"after debit: A1={ledger.get_balance(a1)} B1={ledger.get_balance(b1)}")
    ledger.apply_credit(EntryBatch.of(a1, 15, a1, 15))
    print(f"after credit: A1={ledger.get_balance(a1)}")
    wait_for_enter()


def step_10_to_12_signatures(ledger, key_map, wallets):
    alice = wallets["alice"]
    a1 = key_map.get_public_key("A1")
    outputs = EntryBatch.of(key_map.get_public_key("B2"), 10, key_map.get_public_key("C1"), 20)

    step_header(10, "A correctly signed input", "A1 signs the outputs it pays for, amount 30")
    good = SignedInput.sign(a1, 30, outputs, alice)
    print(f"signature valid: {good.check_signature(outputs, alice)}")
    wait_for_enter()

    step_header(11, "A signature over something else", "Reuse a signature over an unrelated message")
    unrelated = alice.sign_message((1).to_bytes(4, "big"), "A1")
    print(f"signature valid: {SignedInput(a1, 30, unrelated).check_signature(outputs, alice)}")
    wait_for_enter()

    step_header(12, "Full transaction", "Validate and apply A1 -> (B2: 10, C1: 20)")
    tx = build_transaction([(a1, 30)], outputs, alice)
    report = tx.validate(ledger, alice)
    print(f"amounts valid: {report.amounts_valid}, signatures valid: {report.signatures_valid}, "
          f"deductible: {report.deductible}")
    result = ledger.execute(tx, alice)
    print(f"result: {result.value}")
    if result == ExecuteResult.APPLIED:
        print(f"replaying the same transaction: {ledger.execute(tx, alice).value}")
    print()
    ledger.print_balances(key_map)


def main():
    wallets = step_01_wallets()
    key_map = step_02_directory(wallets)
    ledger = step_03_empty_ledger(key_map)
    step_04_to_06_balances(ledger, key_map)
    step_07_to_09_batches(ledger, key_map)
    step_10_to_12_signatures(ledger, key_map, wallets)


if __name__ == "__main__":
    main()
