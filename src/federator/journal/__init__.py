"""
Cycle journal for post-crash forensics.

The journal is:
- Append-only (JSONL format)
- Written BEFORE every broadcast
- Integrity-verified (hash chaining)
"""

from .models import BroadcastKind, JournalEntry, JournalEntryType
from .writer import CycleJournal

__all__ = ["BroadcastKind", "JournalEntry", "JournalEntryType", "CycleJournal"]
