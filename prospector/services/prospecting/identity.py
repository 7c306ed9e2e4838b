"""Dedup identity for discovered businesses.

Two snapshots are the same business when their normalized name and 5-digit
zip prefix match. Claims are scoped to an organization, or to the agent for
personal (org-less) searches.
"""

import re
from typing import Optional

from prospector.services.prospecting.models import DiscoveredBusiness

_WHITESPACE_RE = re.compile(r"\s+")
_ZIP_IN_ADDRESS_RE = re.compile(r"\b(\d{5})(?:-\d{4})?\b")


def normalize_name(name: str) -> str:
    return _WHITESPACE_RE.sub(" ", name or "").strip().casefold()


def zip_prefix(zip_code: Optional[str]) -> str:
    digits = "".join(ch for ch in (zip_code or "") if ch.isdigit())
    return digits[:5]


def extract_zip(address: Optional[str]) -> Optional[str]:
    """Pull the last US zip code out of a free-form address."""
    if not address:
        return None
    matches = _ZIP_IN_ADDRESS_RE.findall(address)
    return matches[-1] if matches else None


def business_identity(business: DiscoveredBusiness) -> tuple[str, str]:
    zip_code = business.zip_code or extract_zip(business.address)
    return normalize_name(business.name), zip_prefix(zip_code)


def scope_key(agent_id: str, org_id: Optional[int]) -> str:
    if org_id is not None:
        return f"org:{org_id}"
    return f"agent:{agent_id}"
