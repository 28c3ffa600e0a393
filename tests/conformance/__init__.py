"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the transaction ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. aggregation.py - Affordability is judged on per-identity sums
2. atomicity.py - All-or-nothing transaction semantics
3. signatures.py - Signatures bind to outputs and amount
4. conservation.py - Value is only burned, never created
5. determinism.py - Reproducible behavior
6. concurrency.py - Check-then-apply cannot double-spend

These tests use hypothesis for property-based testing.
"""
