import pytest
from unittest.mock import patch, MagicMock

from contestbot.queue.jobs import notify_winners_job


@patch("contestbot.queue.jobs.get_email_sender")
@patch("contestbot.queue.jobs.get_notifier")
@patch("contestbot.queue.jobs.get_code_ledger")
@patch("contestbot.queue.jobs.notify_winners")
def test_job_builds_collaborators_and_notifies(mock_notify, mock_ledger, mock_notifier, mock_mailer):
    mock_notify.return_value = {"success": True, "totalWinners": 2}

    out = notify_winners_job()

    assert out == {"success": True, "totalWinners": 2}
    mock_notify.assert_called_once_with(
        mock_ledger.return_value, mock_notifier.return_value, mock_mailer.return_value
    )


@patch("contestbot.queue.jobs.get_email_sender", MagicMock())
@patch("contestbot.queue.jobs.get_notifier", MagicMock())
@patch("contestbot.queue.jobs.get_code_ledger", MagicMock())
@patch("contestbot.queue.jobs.notify_winners")
def test_job_reraises_for_worker_retry(mock_notify):
    mock_notify.side_effect = RuntimeError("db gone")

    with pytest.raises(RuntimeError):
        notify_winners_job()
