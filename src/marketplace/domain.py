"""Campus marketplace core: carts, orders, payment settlement and the inventory ledger.

A single bounded context. Directory data (users, vendors, universities,
items) lives alongside the transactional aggregates because every
checkout step reads it.
"""

from protean.domain import Domain

marketplace = Domain(name="marketplace")

