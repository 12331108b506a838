"""
Backend SpinPay — payment verification service for in-app spin rewards.

Checks the TON ledger through public indexing APIs to prove that a claimed
payment happened before a reward is granted. Modular architecture with a
read-only ledger layer (addresses, amounts, extraction, upstream lookups),
a pure verification decision, and a thin HTTP adapter.
"""

__version__ = "0.1.0"
