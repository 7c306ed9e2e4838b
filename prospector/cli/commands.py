import asyncio
import signal

import typer
from loguru import logger

from prospector.config import settings
from prospector.db.db import close_pool
from prospector.services.prospecting.categories import BUILTIN_CATEGORIES
from prospector.services.prospecting.exceptions import ProspectingError
from prospector.services.prospecting.models import SearchParams
from prospector.services.prospecting.service import Service

app = typer.Typer()


@app.command()
def categories():
    """List the built-in business categories."""
    for code, entry in BUILTIN_CATEGORIES.items():
        print(f"{code:<14} {entry['mcc_code']}  {entry['name']}")


@app.command()
def submit(
    location: str = typer.Argument(..., help="ZIP code or address to search around"),
    category: list[str] = typer.Option(..., "--category", "-c", help="Category code (repeatable)"),
    agent_id: str = typer.Option(..., "--agent", "-a", help="Agent the results belong to"),
    org_id: int = typer.Option(None, "--org", help="Agent's organization id"),
    radius: float = typer.Option(10.0, "--radius", "-r", help="Search radius in miles"),
    max_results: int = typer.Option(25, "--max-results", "-n", help="Maximum businesses to return"),
):
    """
    Queue a prospect search.

    Examples:
        prospector submit 46268 -c auto_repair -c car_wash --agent agent-42

        prospector submit "Carmel, IN" -c restaurant --agent agent-42 --org 7 -r 5
    """

    async def run():
        try:
            svc = Service.from_settings(settings)
            job_id = await svc.submit_search(
                agent_id=agent_id,
                org_id=org_id,
                params=SearchParams(
                    location=location,
                    categories=category,
                    radius_miles=radius,
                    max_results=max_results,
                ),
            )
            print(f"Queued search job #{job_id}")
        except ProspectingError as e:
            print(f"Error: {e}")
            raise typer.Exit(code=1)
        finally:
            await close_pool()

    asyncio.run(run())


@app.command()
def status(job_id: int = typer.Argument(..., help="Search job id")):
    """Show a search job's state and results."""

    async def run():
        try:
            svc = Service.from_settings(settings)
            view = await svc.get_job(job_id)
        except ProspectingError as e:
            print(f"Error: {e}")
            raise typer.Exit(code=1)
        finally:
            await close_pool()

        job = view.job
        print(f"Job #{job.id}: {job.status.value} ({job.progress}%)")
        if job.error_message:
            print(f"  {job.error_message}")
        for biz in job.results or []:
            print(f"  - {biz.name} | {biz.address or ''} | {biz.phone or ''}")
        if job.duplicates_skipped:
            print(f"  ({job.duplicates_skipped} already in the pipeline)")

    asyncio.run(run())


@app.command()
def recover():
    """Fail processing jobs that have stopped making progress."""

    async def run():
        try:
            svc = Service.from_settings(settings)
            recovered = await svc.recover_stuck_jobs()
            print(f"Recovered {len(recovered)} stuck jobs")
        finally:
            await close_pool()

    asyncio.run(run())


@app.command()
def worker(
    concurrency: int = typer.Option(None, "--concurrency", "-c", help="Worker count (defaults to WORKER_CONCURRENCY)"),
    drain: bool = typer.Option(False, "--drain", help="Exit once the pending queue is empty"),
):
    """Run search workers until interrupted."""

    async def run():
        svc = Service.from_settings(settings)
        pool = svc.build_worker_pool(settings, concurrency=concurrency)
        try:
            await svc.recover_stuck_jobs()
            if drain:
                processed = await pool.drain()
                print(f"Processed {processed} search jobs")
                return

            stop = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, stop.set)

            pool.start()
            logger.info("Workers running; press Ctrl+C to stop")
            await stop.wait()
            await pool.stop()
        finally:
            await close_pool()

    asyncio.run(run())
