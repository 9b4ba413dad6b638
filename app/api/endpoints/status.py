"""
Status endpoint for operators.
"""
from fastapi import APIRouter
from app.services.capture_service import capture_service
from app.services.scheduler_service import scheduler

router = APIRouter()


@router.get("/status")
async def service_status():
    """Scheduler state, queued delayed removals and captures still in progress."""
    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None
        })

    return {
        "running": scheduler.running,
        "jobs": jobs,
        "captures": capture_service.snapshot()
    }
