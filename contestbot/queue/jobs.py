from contestbot.deps import get_code_ledger, get_email_sender, get_notifier
from contestbot.notify.winners import notify_winners
from contestbot.observability.logging import log


def notify_winners_job() -> dict:
    """
    Background job: notify every current winner.
    Runs in an RQ worker, so collaborators are built here, not passed in.
    """
    log(event="winner_notify_job_start")
    try:
        return notify_winners(get_code_ledger(), get_notifier(), get_email_sender())
    except Exception as e:
        log(event="winner_notify_job_exception", error=str(e))
        raise
