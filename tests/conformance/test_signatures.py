"""
Signature Binding Conformance Tests

INVARIANT: A signature authorizes exactly one (outputs, amount) pair.

    ∀ input I signed for (O1, a1):
        I.check_signature(O2) ⟹ O2 = O1 ∧ I.amount = a1

A valid signature cannot be replayed onto different outputs, and an
input's signature cannot be reused for a different amount.
"""

from hypothesis import given, settings, assume
from hypothesis import strategies as st

from txledger import Ledger, EntryBatch, SignedInput, Transaction, Wallet, build_transaction

from tests.fake_signer import FakeSigner


SIGNER = FakeSigner({"alice", "bob"})
RECIPIENTS = ["bob", "carol", "david"]


@st.composite
def outputs(draw):
    pairs = draw(st.lists(
        st.tuples(st.sampled_from(RECIPIENTS), st.integers(min_value=0, max_value=100)),
        max_size=4,
    ))
    return EntryBatch.of(*[value for pair in pairs for value in pair])


class TestSignatureBindingProperties:

    @given(outputs(), st.integers(min_value=0, max_value=500))
    @settings(max_examples=100)
    def test_signed_input_verifies(self, o1, amount):
        assert SignedInput.sign("alice", amount, o1, SIGNER).check_signature(o1, SIGNER)

    @given(outputs(), outputs(), st.integers(min_value=0, max_value=500))
    @settings(max_examples=200)
    def test_other_outputs_fail(self, o1, o2, amount):
        assume(o1 != o2)
        tx_input = SignedInput.sign("alice", amount, o1, SIGNER)
        assert not tx_input.check_signature(o2, SIGNER)

    @given(outputs(), st.integers(min_value=0, max_value=500), st.integers(min_value=0, max_value=500))
    @settings(max_examples=100)
    def test_other_amount_fails(self, o1, signed_amount, claimed_amount):
        assume(signed_amount != claimed_amount)
        signed = SignedInput.sign("alice", signed_amount, o1, SIGNER)
        claimed = SignedInput("alice", claimed_amount, signed.signature)
        assert not claimed.check_signature(o1, SIGNER)


class TestSignatureBindingExamples:

    def test_same_total_different_split(self):
        o1 = EntryBatch.of("bob", 10, "carol", 20)
        o2 = EntryBatch.of("bob", 20, "carol", 10)
        assert o1.total_amount() == o2.total_amount() == 30
        tx_input = SignedInput.sign("alice", 30, o1, SIGNER)
        assert tx_input.check_signature(o1, SIGNER)
        assert not tx_input.check_signature(o2, SIGNER)

    def test_ed25519_same_total_different_recipient(self):
        wallet = Wallet.generate(["A1", "B2", "C1", "C2"], seed=b"binding")
        a1, b2, c1, c2 = (wallet.get_public_key(n) for n in ["A1", "B2", "C1", "C2"])
        o1 = EntryBatch.of(b2, 10, c1, 20)
        o2 = EntryBatch.of(b2, 10, c2, 20)
        tx_input = SignedInput.sign(a1, 30, o1, wallet)
        assert tx_input.check_signature(o1, wallet)
        assert not tx_input.check_signature(o2, wallet)

    def test_str_and_bytes_recipients_do_not_substitute(self):
        honest = EntryBatch.of("bob", 30)
        substituted = EntryBatch.of(b"bob", 30)
        tx_input = SignedInput.sign("alice", 30, honest, SIGNER)
        assert tx_input.check_signature(honest, SIGNER)
        assert not tx_input.check_signature(substituted, SIGNER)

        reverse = SignedInput.sign("alice", 30, substituted, SIGNER)
        assert not reverse.check_signature(honest, SIGNER)

    def test_str_and_bytes_substitution_rejected_by_ledger(self):
        ledger = Ledger("test", {"alice": 30}, verbose=False)
        honest = build_transaction([("alice", 30)], EntryBatch.of("bob", 30), SIGNER)
        substituted = Transaction(honest.inputs, EntryBatch.of(b"bob", 30))
        assert honest.check_valid(ledger, SIGNER)
        assert not substituted.check_valid(ledger, SIGNER)

    def test_public_key_and_raw_key_recipients_do_not_substitute(self):
        wallet = Wallet.generate(["A1", "B1"], seed=b"binding")
        a1, b1 = wallet.get_public_key("A1"), wallet.get_public_key("B1")
        ledger = Ledger("test", {a1: 30}, verbose=False)
        honest = build_transaction([(a1, 30)], EntryBatch.of(b1, 30), wallet)
        substituted = Transaction(honest.inputs, EntryBatch.of(b1.key, 30))
        assert honest.check_valid(ledger, wallet)
        assert not substituted.check_valid(ledger, wallet)
