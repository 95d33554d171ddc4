from __future__ import annotations

import csv
import re
from pathlib import Path
from typing import List

from .config import NEWSLETTER_KEY
from .datastore import SQLiteDataStore
from .errors import InputValidationError
from .logger import get_logger

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def signup(store: SQLiteDataStore, email: str, newsletter: bool = True, list_key: str = NEWSLETTER_KEY) -> bool:
    """
    Register ``email`` and, if ``newsletter`` is set, append it to the subscriber list.

    Returns:
        True if the email was stored, False if the user opted out of the newsletter.
    """
    email = (email or "").strip()
    if not EMAIL_PATTERN.match(email):
        raise InputValidationError(f"Invalid email address: {email!r}")
    if not newsletter:
        logger.info("Signup without newsletter opt-in; nothing stored.")
        return False
    if store.contains_email(email, list_key) or not store.append_email(email, list_key):
        raise InputValidationError(f"{email} is already subscribed")
    logger.info(f"Subscribed {email}")
    return True


def list_subscribers(store: SQLiteDataStore, list_key: str = NEWSLETTER_KEY) -> List[str]:
    return store.fetch_emails(list_key)


def export_subscribers(store: SQLiteDataStore, path: str | Path, list_key: str = NEWSLETTER_KEY) -> int:
    """Write the subscriber list to a one-column CSV with an ``Email`` header."""
    emails = store.fetch_emails(list_key)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(["Email"])
        writer.writerows([email] for email in emails)
    logger.info(f"Exported {len(emails)} subscribers to {path}")
    return len(emails)


def broadcast(store: SQLiteDataStore, subject: str, message: str, list_key: str = NEWSLETTER_KEY) -> int:
    """Simulate sending ``message`` to every subscriber; returns the recipient count."""
    if not subject.strip() or not message.strip():
        raise InputValidationError("Subject and message are required")
    recipients = store.fetch_emails(list_key)
    # No mail transport: the send is recorded in the log only.
    logger.info(f"Sending email {subject!r} to {len(recipients)} recipients: {recipients}")
    return len(recipients)
