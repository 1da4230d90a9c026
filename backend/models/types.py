"""Shared type definitions for type checking.

Uses NewType for identifiers to provide compile-time type safety - prevents
mixing a subscriber key with an unsubscribe token or a fingerprint.

Uses TypeAlias for structural types.
"""

from typing import NewType, TypeAlias

# Identifier types using NewType for type safety
SubscriberKey = NewType("SubscriberKey", str)  # "SUBSCRIBER:<sha256>"
UnsubscribeToken = NewType("UnsubscribeToken", str)
Fingerprint = NewType("Fingerprint", str)  # 64-char lowercase hex

# Structural aliases
EmailAddress: TypeAlias = str
StoreKey: TypeAlias = str
