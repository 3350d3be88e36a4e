# tests/property/__init__.py
"""Property-based tests for pixelqueue.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of.

Test categories:
- registry: keying, batch opening and take() semantics
- scheduler: dedup and one-invocation-per-input under random submissions
"""
