"""Claim arbitration: one owner per business within a dedup scope.

The dedup scope is the agent's organization, or the agent alone when they
have none. Conflicts are settled by the unique index on
``(scope_key, normalized_name, zip_prefix)``, not by a read-then-write check.
"""

from typing import Optional

from asyncpg.exceptions import UniqueViolationError
from loguru import logger

from prospector.services.prospecting import repo
from prospector.services.prospecting.exceptions import (
    AlreadyClaimedError,
    ClaimNotFoundError,
    SearchValidationError,
)
from prospector.services.prospecting.identity import business_identity, scope_key
from prospector.services.prospecting.models import (
    ClaimedProspect,
    DedupResult,
    DiscoveredBusiness,
)


class ClaimArbitrator:
    async def prefilter(
        self,
        businesses: list[DiscoveredBusiness],
        agent_id: str,
        org_id: Optional[int] = None,
    ) -> DedupResult:
        """Drop businesses already claimed in the scope.

        Advisory only: a business can still be claimed between this check and
        the agent's claim attempt, which ``claim`` resolves.
        """
        if not businesses:
            return DedupResult()

        claimed = await repo.list_claim_identities(scope_key(agent_id, org_id))
        kept = [b for b in businesses if business_identity(b) not in claimed]
        skipped = len(businesses) - len(kept)
        if skipped:
            logger.debug(
                f"Pre-filter removed {skipped} of {len(businesses)} businesses "
                f"already claimed in scope {scope_key(agent_id, org_id)}"
            )
        return DedupResult(businesses=kept, duplicates_skipped=skipped)

    async def claim(
        self,
        business: DiscoveredBusiness,
        agent_id: str,
        org_id: Optional[int] = None,
    ) -> ClaimedProspect:
        """Convert a snapshot into a claimed prospect owned by ``agent_id``.

        Exactly one of any number of concurrent claims on the same business
        succeeds; the rest raise ``AlreadyClaimedError``.
        """
        normalized_name, zip5 = business_identity(business)
        if not normalized_name:
            raise SearchValidationError("Business name is required to claim a prospect")

        try:
            return await repo.insert_claimed_prospect(
                business=business, agent_id=agent_id, org_id=org_id
            )
        except UniqueViolationError:
            logger.info(
                f"Claim conflict for '{business.name}' ({zip5 or 'no zip'}) "
                f"in scope {scope_key(agent_id, org_id)}"
            )
            raise AlreadyClaimedError(business.name, zip5) from None

    async def get_claim(self, claim_id: int) -> ClaimedProspect:
        claim = await repo.get_claimed_prospect(claim_id=claim_id)
        if not claim:
            raise ClaimNotFoundError(claim_id)
        return claim
