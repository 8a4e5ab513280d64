"""Celery tasks. Run a worker with beat for scheduled newsletter digests."""
from competitor_signals.tasks.digest_tasks import send_newsletter, send_all_newsletters

__all__ = [
    "send_newsletter",
    "send_all_newsletters",
]
