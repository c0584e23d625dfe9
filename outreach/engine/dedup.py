"""
Dedup Engine
Identity key for a contact is vendorName|email (trimmed, lower-cased), defined
only when both are present. Contacts without a key cannot be deduplicated and
always pass.
"""

import logging
from typing import Iterable, Optional, Set

from outreach.models import Contact

logger = logging.getLogger(__name__)


def dedup_key(vendor_name: Optional[str], email: Optional[str]) -> Optional[str]:
    """`lower(trim(vendor))|lower(trim(email))`, or None if either part is blank."""
    vendor = (vendor_name or '').strip().lower()
    mail = (email or '').strip().lower()
    if not vendor or not mail:
        return None
    return f"{vendor}|{mail}"


def contact_key(contact: Contact) -> Optional[str]:
    return dedup_key(contact.vendor_name, contact.email)


class DedupTracker:
    """
    Admission check for one import batch.

    Keys already in the store are fixed at construction; keys of candidates
    admitted earlier in the batch are added as the batch proceeds.
    """

    def __init__(self, existing: Iterable[Contact]):
        self.existing_keys: Set[str] = {key for key in map(contact_key, existing) if key}
        self.batch_keys: Set[str] = set()

    def admit(self, candidate: Contact) -> bool:
        """True if the candidate is not a duplicate; records its key when admitted."""
        key = contact_key(candidate)
        if key is None:
            return True
        if key in self.existing_keys:
            logger.debug(f"dedup: '{key}' already in store")
            return False
        if key in self.batch_keys:
            logger.debug(f"dedup: '{key}' repeated within batch")
            return False
        self.batch_keys.add(key)
        return True
