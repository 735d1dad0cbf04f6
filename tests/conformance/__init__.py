"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the vault.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Balances equal deposits minus withdrawals
2. cap_and_limit.py - Running total within cap, every withdrawal within limit
3. atomicity.py - Rejected operations change nothing
4. zero_value.py - Zero amounts are worth zero and never consult the oracle

These tests use hypothesis for property-based testing.
"""
