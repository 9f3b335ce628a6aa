from fastapi import APIRouter, Depends, HTTPException
from starlette.concurrency import run_in_threadpool

from contestbot.api.auth import require_admin
from contestbot.api.schemas import StatsResponse, UpdateWinnersRequest, UpdateWinnersResponse
from contestbot.deps import get_code_ledger, get_email_sender, get_notifier
from contestbot.ledger.repo import CodeLedger, LedgerError
from contestbot.notify.email import EmailSender
from contestbot.notify.whatsapp import Notifier
from contestbot.notify.winners import notify_winners
from contestbot.observability.logging import log
from contestbot.queue.jobs import notify_winners_job
from contestbot.queue.rq_conn import get_queue
from contestbot.settings import settings
import contestbot.observability.metrics as metrics

router = APIRouter(dependencies=[Depends(require_admin)], tags=["admin"])


@router.get("/api/stats", response_model=StatsResponse)
def get_stats(ledger: CodeLedger = Depends(get_code_ledger)):
    """Registration totals, claims per day, and the current winners."""
    try:
        return ledger.registration_stats()
    except LedgerError as e:
        log(event="admin_stats_failed", error=str(e)[:300])
        raise HTTPException(status_code=500, detail="Failed to fetch statistics")


@router.get("/api/recent-activity")
def get_recent_activity(ledger: CodeLedger = Depends(get_code_ledger)):
    try:
        return {"entries": ledger.recent_activity()}
    except LedgerError as e:
        log(event="admin_recent_activity_failed", error=str(e)[:300])
        raise HTTPException(status_code=500, detail="Failed to fetch recent activity data")


@router.post("/api/update-winners", response_model=UpdateWinnersResponse)
def update_winners(req: UpdateWinnersRequest, ledger: CodeLedger = Depends(get_code_ledger)):
    """Replace the winner set with the given claimed code ids."""
    if not req.winnerIds:
        raise HTTPException(status_code=400, detail="Winner IDs are required")
    try:
        winners = ledger.set_winners(req.winnerIds)
    except LedgerError as e:
        log(event="admin_update_winners_failed", error=str(e)[:300])
        raise HTTPException(status_code=500, detail="Failed to update winners")
    return {"success": True, "updatedCount": len(winners), "winners": winners}


# The dashboard still posts to the older send-winner-emails path.
@router.post("/api/send-winner-emails")
@router.post("/api/send-winner-notifications")
async def send_winner_notifications(
    ledger: CodeLedger = Depends(get_code_ledger),
    notifier: Notifier = Depends(get_notifier),
    mailer: EmailSender = Depends(get_email_sender),
):
    try:
        winners = await run_in_threadpool(ledger.list_winners)
    except LedgerError as e:
        log(event="admin_notify_winners_failed", error=str(e)[:300])
        raise HTTPException(status_code=500, detail="Failed to send winner notifications")
    if not winners:
        raise HTTPException(status_code=400, detail="No winners found")

    if settings.WINNER_NOTIFY_MODE == "rq":
        job = get_queue().enqueue(notify_winners_job)
        log(event="winner_notify_job_enqueued", jobId=job.id, totalWinners=len(winners))
        return {"success": True, "queued": True, "jobId": job.id, "totalWinners": len(winners)}

    try:
        return await run_in_threadpool(notify_winners, ledger, notifier, mailer)
    except LedgerError as e:
        log(event="admin_notify_winners_failed", error=str(e)[:300])
        raise HTTPException(status_code=500, detail="Failed to send winner notifications")


@router.get("/admin/metrics")
def get_metrics():
    """Registration flow counters backed by Redis."""
    return metrics.get_metrics_snapshot()
