# trackreg/journal/__init__.py
"""
Journal of applied registry calls.

Core concepts:
- JournalEntry: One applied mutating call
- Journal: Append-only store of entries
- Signature: RSA proof that an entry came from the registry's key
"""

from .entry import JournalEntry, Journal
from .signatures import (
    generate_keypair,
    load_key,
    public_key_from_private,
    sign_entry,
    verify_entry,
)

__all__ = [
    "JournalEntry",
    "Journal",
    "generate_keypair",
    "load_key",
    "public_key_from_private",
    "sign_entry",
    "verify_entry",
]
