"""
Embedded key-value storage engine with nested buckets and transactions.
"""

from kvmount.engine.bucket import Bucket
from kvmount.engine.database import Database
from kvmount.engine.transaction import Transaction

__all__ = ["Bucket", "Database", "Transaction"]
