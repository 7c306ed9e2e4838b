"""Serper Maps discovery provider.

Runs one Google Maps query per category search term through the Serper.dev
API ("<term> within <radius> miles of <location>") and turns the places into
snapshots. Queries run one at a time so the search can stop as soon as
``max_results`` businesses are found.
"""

from typing import Optional

import httpx
from loguru import logger

from prospector.services.prospecting.categories import BUILTIN_CATEGORIES, search_terms_for
from prospector.services.prospecting.exceptions import ProviderError
from prospector.services.prospecting.identity import extract_zip, normalize_name, zip_prefix
from prospector.services.prospecting.models import DiscoveredBusiness, SearchParams
from prospector.services.prospecting.sources.base import DiscoveryProvider, ProgressCallback

SERPER_MAPS_URL = "https://google.serper.dev/maps"

PLACE_CONFIDENCE = 0.9

# Junk domains to skip
SKIP_DOMAINS = {
    # Social media
    "facebook.com", "instagram.com", "twitter.com", "youtube.com",
    "tiktok.com", "linkedin.com", "yelp.com",
    # Directories and delivery aggregators
    "yellowpages.com", "doordash.com", "grubhub.com", "ubereats.com",
    "google.com",
    # Government/education
    ".gov", ".edu", ".mil",
}


def build_query(term: str, params: SearchParams) -> str:
    return f"{term} within {params.radius_miles:g} miles of {params.location}"


class _SearchRun:
    """Bookkeeping for a single discover() call."""

    def __init__(self):
        self.api_calls = 0
        self.attempted = 0
        self.failures = 0
        self.out_of_credits = False
        self.seen: set = set()
        self.businesses: list[DiscoveredBusiness] = []


class SerperMapsProvider(DiscoveryProvider):
    """Discover businesses via the Serper Google Maps API.

    Holds only configuration, so one instance can be shared by every worker.
    """

    name = "serper_maps"

    def __init__(self, api_key: str, client: Optional[httpx.AsyncClient] = None):
        if not api_key:
            raise ValueError("SERPER_API_KEY is required for the serper discovery provider")
        self.api_key = api_key
        self._client = client

    async def discover(
        self,
        params: SearchParams,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[DiscoveredBusiness]:
        queries = search_terms_for(params.categories)
        if not queries:
            return []

        logger.info(
            f"Starting maps search: {len(queries)} queries within {params.radius_miles:g}mi "
            f"of {params.location}, up to {params.max_results} results"
        )

        run = _SearchRun()
        if self._client is not None:
            await self._run_queries(self._client, queries, params, run, on_progress)
        else:
            async with httpx.AsyncClient(timeout=30.0) as client:
                await self._run_queries(client, queries, params, run, on_progress)

        if run.attempted and run.failures == run.attempted:
            raise ProviderError(
                f"Discovery lookup failed: all {run.failures} maps queries near {params.location} failed"
            )
        if run.failures:
            logger.warning(
                f"{run.failures} of {run.attempted} maps queries failed; returning partial results"
            )

        logger.info(f"Maps search done: {len(run.businesses)} businesses, {run.api_calls} API calls")
        return run.businesses

    async def _run_queries(
        self,
        client: httpx.AsyncClient,
        queries: list[tuple[str, str]],
        params: SearchParams,
        run: _SearchRun,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        """Run queries until max_results is reached or credits run out."""
        for done, (category, term) in enumerate(queries, start=1):
            if len(run.businesses) >= params.max_results:
                break
            run.attempted += 1
            places = await self._search_serper(client, build_query(term, params), run)
            if places is None:
                run.failures += 1
                if run.out_of_credits:
                    break
            else:
                for place in places:
                    biz = self._process_place(place, category, run.seen)
                    if biz:
                        run.businesses.append(biz)
                        if len(run.businesses) >= params.max_results:
                            break
            if on_progress:
                await on_progress(int(done * 100 / len(queries)))

    async def _search_serper(
        self, client: httpx.AsyncClient, query: str, run: _SearchRun
    ) -> Optional[list[dict]]:
        """Call Serper Maps API. Returns None when the request failed."""
        run.api_calls += 1
        try:
            resp = await client.post(
                SERPER_MAPS_URL,
                headers={
                    "X-API-KEY": self.api_key,
                    "Content-Type": "application/json",
                },
                json={"q": query},
            )
        except httpx.HTTPError as e:
            logger.error(f"Serper request failed: {e}")
            return None

        if resp.status_code == 400 and "credits" in resp.text.lower():
            logger.warning("Out of Serper credits")
            run.out_of_credits = True
            return None

        if resp.status_code != 200:
            logger.error(f"Serper error {resp.status_code}: {resp.text[:100]}")
            return None

        try:
            data = resp.json()
        except ValueError:
            logger.error(f"Serper returned a non-JSON body: {resp.text[:100]}")
            return None
        places = data.get("places", []) if isinstance(data, dict) else None
        if not isinstance(places, list):
            logger.error(f"Serper returned an unexpected payload: {resp.text[:100]}")
            return None
        return [p for p in places if isinstance(p, dict)]

    def _process_place(self, place: dict, category: str, seen: set) -> Optional[DiscoveredBusiness]:
        """Process a Serper Maps result into a DiscoveredBusiness."""
        name = (place.get("title") or "").strip()
        if not name:
            return None

        address = place.get("address") or ""
        zip_code = extract_zip(address)

        # Same business can come back from several queries
        keys = {(normalize_name(name), zip_prefix(zip_code))}
        if place.get("placeId"):
            keys.add(place["placeId"])
        if keys & seen:
            return None
        seen.update(keys)

        website = place.get("website") or ""
        if website:
            website_lower = website.lower()
            for domain in SKIP_DOMAINS:
                if domain in website_lower:
                    return None

        city, state = self._parse_address(address)
        info = BUILTIN_CATEGORIES.get(category, {})

        return DiscoveredBusiness(
            name=name,
            address=address or None,
            city=city,
            state=state,
            zip_code=zip_code,
            phone=place.get("phoneNumber"),
            website=website or None,
            category_code=category,
            mcc_code=info.get("mcc_code"),
            confidence=PLACE_CONFIDENCE,
            hours=place.get("openingHours") if isinstance(place.get("openingHours"), str) else None,
            source="serper_maps",
        )

    @staticmethod
    def _parse_address(address: str) -> tuple[Optional[str], Optional[str]]:
        """Extract city and state from "street, city, ST 12345"."""
        if not address:
            return None, None
        parts = [p.strip() for p in address.split(",")]
        if len(parts) >= 2:
            last = parts[-1].split()
            state = last[0] if last and len(last[0]) == 2 else None
            city = parts[-2]
            return city, state
        return None, None
