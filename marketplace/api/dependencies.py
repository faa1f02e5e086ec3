"""
FastAPI Dependencies
"""
from marketplace.infrastructure.database import get_db
from marketplace.infrastructure.notifier import WinnerNotifier
from marketplace.services.settlement_worker import default_notifier


def get_notifier() -> WinnerNotifier:
    """Get winner notification channel"""
    return default_notifier()


__all__ = ["get_db", "get_notifier"]
