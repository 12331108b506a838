"""
TON ledger package — read-only access to the public indexing APIs.

Normalizes addresses and amounts, locates transactions by hash, polls account
event feeds, and extracts candidate incoming transfers from whatever document
shape the indexer returned. Modules are imported directly
(backend_spinpay.ledger.addresses, ...) to keep core.exceptions import-safe.
"""
