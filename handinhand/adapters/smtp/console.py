"""
Console notifier adapter - Implements Notifier protocol.

This module provides a console-based implementation of the domain's
notifier port, logging outbound messages for development use.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """
    Implements Notifier protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Selected when no SMTP host is configured; the message body (including
    any verification code) is logged at INFO level.
    """

    def send(self, to: str, subject: str, body: str) -> None:
        """
        Log the message instead of delivering it.

        Args:
            to: Recipient email address
            subject: Message subject
            body: Plain-text body
        """
        logger.info("[EMAIL] To: %s Subject: %s\n%s", to, subject, body)
