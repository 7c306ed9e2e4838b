"""AI-assisted discovery using Claude with the web search tool.

The model is asked to research real local businesses and answer with a JSON
array; the first array in its text output is parsed into snapshots.
"""

import json
import re
from typing import Any, Optional

import anthropic
from loguru import logger
from pydantic import ValidationError

from prospector.services.prospecting.categories import BUILTIN_CATEGORIES, search_terms_for
from prospector.services.prospecting.exceptions import ProviderError
from prospector.services.prospecting.models import DiscoveredBusiness, SearchParams
from prospector.services.prospecting.sources.base import DiscoveryProvider, ProgressCallback

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 8192
DEFAULT_CONFIDENCE = 0.8
MAX_PROMPT_SEARCH_TERMS = 20

WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search"}

_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

SEARCH_PROMPT = """You are a business research assistant helping a sales representative find local businesses to visit. Search for real, currently operating local businesses matching these criteria:

SEARCH PARAMETERS:
- Location: Within {radius:g} miles of {location}
- Business Types: {category_names}
- Search Terms to Use: {search_terms}
- Number of Results Needed: {max_results}

REQUIREMENTS:
1. Only return REAL businesses that currently exist and are operating
2. Include complete address information (street, city, state, zip)
3. Prioritize independent local businesses over national chains
4. Focus on businesses likely to accept card payments
5. Exclude businesses that are permanently closed
6. Verify businesses exist by searching for them

For each business found, provide the official name, full street address, city, state, ZIP, phone number and website if available, the primary business type from the categories above, the 4-digit MCC code that best matches, the owner's name, opening hours and year established if you find them, and a confidence score (0.0-1.0) that this is a real, operating business.

Return ONLY a valid JSON array with no additional text or explanation. Start with [ and end with ]:
[
  {{
    "name": "Example Business Name",
    "address": "123 Main Street",
    "city": "Indianapolis",
    "state": "IN",
    "zipCode": "46032",
    "phone": "(317) 555-1234",
    "website": "https://example.com",
    "businessType": "Restaurants",
    "mccCode": "5812",
    "confidence": 0.95
  }}
]"""


def build_prompt(params: SearchParams) -> str:
    names = [BUILTIN_CATEGORIES[c]["name"] for c in params.categories if c in BUILTIN_CATEGORIES]
    terms = names + [term for _, term in search_terms_for(params.categories)]
    return SEARCH_PROMPT.format(
        radius=params.radius_miles,
        location=params.location,
        category_names=", ".join(names),
        search_terms=", ".join(terms[:MAX_PROMPT_SEARCH_TERMS]),
        max_results=params.max_results,
    )


def _resolve_category(entry: dict, categories: list[str]) -> Optional[str]:
    """Map the model's business type or MCC back to one of the requested codes."""
    business_type = str(entry.get("businessType") or "").strip().lower()
    mcc = str(entry.get("mccCode") or "").strip()
    for code in categories:
        info = BUILTIN_CATEGORIES.get(code)
        if not info:
            continue
        if business_type in (code, info["name"].lower()) or mcc == info["mcc_code"]:
            return code
    return categories[0] if len(categories) == 1 else None


def _year(value: Any) -> Optional[int]:
    try:
        return int(value) if value else None
    except (TypeError, ValueError):
        return None


def _confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, float(value)))


def parse_businesses(text: str, params: SearchParams) -> list[DiscoveredBusiness]:
    """Extract snapshots from the model's answer.

    Raises ProviderError when no JSON array can be read. Entries that are
    not objects or lack a name are skipped.
    """
    match = _JSON_ARRAY_RE.search(text or "")
    if not match:
        raise ProviderError("Discovery response was malformed: no JSON array found")
    try:
        entries = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ProviderError(f"Discovery response was malformed: {e.msg}") from e
    if not isinstance(entries, list):
        raise ProviderError("Discovery response was malformed: expected a JSON array")

    businesses = []
    for entry in entries:
        if not isinstance(entry, dict) or not str(entry.get("name") or "").strip():
            logger.warning(f"Skipping malformed discovery entry: {str(entry)[:100]}")
            continue
        category = _resolve_category(entry, params.categories)
        try:
            businesses.append(
                DiscoveredBusiness(
                    name=str(entry["name"]).strip(),
                    address=entry.get("address") or None,
                    city=entry.get("city") or None,
                    state=entry.get("state") or None,
                    zip_code=str(entry.get("zipCode") or "") or None,
                    phone=entry.get("phone") or None,
                    website=entry.get("website") or None,
                    email=entry.get("email") or None,
                    category_code=category,
                    mcc_code=str(entry.get("mccCode") or "")
                    or (BUILTIN_CATEGORIES[category]["mcc_code"] if category else None),
                    confidence=_confidence(entry.get("confidence")),
                    owner_name=entry.get("ownerName") or None,
                    hours=entry.get("hours") if isinstance(entry.get("hours"), str) else None,
                    year_established=_year(entry.get("yearEstablished")),
                    source="anthropic_web_search",
                )
            )
        except ValidationError as e:
            logger.warning(f"Skipping invalid discovery entry '{entry.get('name')}': {e.error_count()} errors")
    return businesses


class AnthropicDiscoveryProvider(DiscoveryProvider):
    """Discover businesses by letting Claude search the web."""

    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        if not api_key and client is None:
            raise ValueError("ANTHROPIC_API_KEY is required for the anthropic discovery provider")
        self.model = model
        self.max_tokens = max_tokens
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def discover(
        self,
        params: SearchParams,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[DiscoveredBusiness]:
        logger.info(
            f"Asking {self.model} for {params.max_results} businesses "
            f"({', '.join(params.categories)}) near {params.location}"
        )
        try:
            message = await self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                tools=[WEB_SEARCH_TOOL],
                messages=[{"role": "user", "content": build_prompt(params)}],
            )
        except anthropic.APIError as e:
            raise ProviderError(f"Discovery lookup failed: {e.message}") from e

        if on_progress:
            await on_progress(80)

        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        businesses = parse_businesses(text, params)
        logger.info(f"Model returned {len(businesses)} businesses near {params.location}")

        if on_progress:
            await on_progress(100)
        return businesses
