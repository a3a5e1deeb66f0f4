"""
Abstract base classes for the storage engine.
"""

from kvmount.interfaces.bucket_like import BucketLike

__all__ = ["BucketLike"]
