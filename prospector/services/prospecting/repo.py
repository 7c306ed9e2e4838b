"""Database repository for the prospecting service.

Every state-changing job query is a single conditional statement
(``UPDATE ... WHERE status = <expected> RETURNING *``); a ``None`` return
means the job was missing or not in the expected state.
"""

import json
import os
from typing import Any, Optional

import aiosql
from loguru import logger

from prospector.db.db import db
from prospector.services.prospecting.identity import business_identity, scope_key
from prospector.services.prospecting.models import (
    ClaimedProspect,
    DiscoveredBusiness,
    SearchJob,
    SearchParams,
)

query_dir = os.path.join(os.path.dirname(__file__), "..", "..", "db", "query")
queries = aiosql.from_path(query_dir, "asyncpg")


def _load_json(value: Any) -> Any:
    # asyncpg hands jsonb back as text unless a codec is registered
    if isinstance(value, str):
        return json.loads(value)
    return value


def _to_job(record) -> Optional[SearchJob]:
    if record is None:
        return None
    row = dict(record)
    row["results"] = _load_json(row.get("results"))
    row["categories"] = list(row.get("categories") or [])
    return SearchJob.model_validate(row)


def _to_claim(record) -> Optional[ClaimedProspect]:
    if record is None:
        return None
    return ClaimedProspect.model_validate(dict(record))


async def insert_search_job(
    agent_id: str, org_id: Optional[int], params: SearchParams
) -> SearchJob:
    pool = await db.get_pool()
    record = await queries.insert_search_job(
        pool,
        agent_id=agent_id,
        org_id=org_id,
        location=params.location,
        categories=params.categories,
        radius_miles=params.radius_miles,
        max_results=params.max_results,
    )
    return _to_job(record)


async def get_search_job(job_id: int) -> Optional[SearchJob]:
    pool = await db.get_pool()
    return _to_job(await queries.get_search_job(pool, job_id=job_id))


async def list_search_jobs_for_agent(agent_id: str) -> list[SearchJob]:
    pool = await db.get_pool()
    records = await queries.list_search_jobs_for_agent(pool, agent_id=agent_id)
    return [_to_job(r) for r in records]


async def list_active_search_jobs_for_org(org_id: int) -> list[SearchJob]:
    pool = await db.get_pool()
    records = await queries.list_active_search_jobs_for_org(pool, org_id=org_id)
    return [_to_job(r) for r in records]


async def claim_next_pending_job(worker_id: str) -> Optional[SearchJob]:
    pool = await db.get_pool()
    return _to_job(await queries.claim_next_pending_job(pool, worker_id=worker_id))


async def update_search_job_progress(job_id: int, progress: int) -> Optional[SearchJob]:
    pool = await db.get_pool()
    record = await queries.update_search_job_progress(
        pool, job_id=job_id, progress=progress
    )
    return _to_job(record)


async def complete_search_job(
    job_id: int,
    results: list[DiscoveredBusiness],
    total_found: int,
    duplicates_skipped: int,
) -> Optional[SearchJob]:
    pool = await db.get_pool()
    record = await queries.complete_search_job(
        pool,
        job_id=job_id,
        results=json.dumps([b.model_dump() for b in results]),
        total_found=total_found,
        duplicates_skipped=duplicates_skipped,
    )
    return _to_job(record)


async def fail_search_job(job_id: int, error_message: str) -> Optional[SearchJob]:
    pool = await db.get_pool()
    record = await queries.fail_search_job(
        pool, job_id=job_id, error_message=error_message
    )
    return _to_job(record)


async def retry_search_job(job_id: int, max_attempts: int) -> Optional[SearchJob]:
    pool = await db.get_pool()
    record = await queries.retry_search_job(
        pool, job_id=job_id, max_attempts=max_attempts
    )
    return _to_job(record)


async def delete_search_job(job_id: int) -> bool:
    pool = await db.get_pool()
    record = await queries.delete_search_job(pool, job_id=job_id)
    return record is not None


async def fail_stale_processing_jobs(
    timeout_seconds: float, error_message: str
) -> list[SearchJob]:
    pool = await db.get_pool()
    records = await queries.fail_stale_processing_jobs(
        pool, timeout_seconds=float(timeout_seconds), error_message=error_message
    )
    return [_to_job(r) for r in records]


async def insert_claimed_prospect(
    business: DiscoveredBusiness, agent_id: str, org_id: Optional[int]
) -> ClaimedProspect:
    """Insert a claim row.

    Raises ``asyncpg.exceptions.UniqueViolationError`` when the business is
    already claimed in this scope.
    """
    pool = await db.get_pool()
    normalized_name, zip5 = business_identity(business)
    record = await queries.insert_claimed_prospect(
        pool,
        scope_key=scope_key(agent_id, org_id),
        org_id=org_id,
        agent_id=agent_id,
        normalized_name=normalized_name,
        zip_prefix=zip5,
        business_name=business.name,
        address=business.address,
        city=business.city,
        state=business.state,
        zip_code=business.zip_code,
        phone=business.phone,
        website=business.website,
        email=business.email,
        category_code=business.category_code,
        mcc_code=business.mcc_code,
        confidence=business.confidence,
        snapshot=business.model_dump_json(),
    )
    logger.info(f"Claimed prospect #{record['id']} for agent {agent_id}")
    return _to_claim(record)


async def get_claimed_prospect(claim_id: int) -> Optional[ClaimedProspect]:
    pool = await db.get_pool()
    return _to_claim(await queries.get_claimed_prospect(pool, claim_id=claim_id))


async def list_claim_identities(scope: str) -> set[tuple[str, str]]:
    """(normalized name, zip prefix) pairs already claimed in a scope."""
    pool = await db.get_pool()
    records = await queries.list_claim_identities_for_scope(pool, scope_key=scope)
    return {(r["normalized_name"], r["zip_prefix"]) for r in records}
