"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of balance reconstruction and
calendar indexing. Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. test_replay.py - Backward replay agrees with the reference walk
2. test_idempotency.py - Repeated queries are stable and side-effect free
3. test_concurrency.py - One build per snapshot version under contention

These tests use hypothesis for property-based testing.
"""
