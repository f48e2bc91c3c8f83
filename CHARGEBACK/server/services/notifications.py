from __future__ import annotations

from CHARGEBACK.server.common.utils.logger import logger
from CHARGEBACK.server.entities.notifications import Notification


###############################################################################
class NotificationCenter:
    """Ordered queue of user-facing notifications for one dashboard view."""

    def __init__(self, owner: str) -> None:
        self.owner = owner
        self.pending: list[Notification] = []

    # -------------------------------------------------------------------------
    def publish(self, notification: Notification) -> None:
        self.pending.append(notification)
        log = logger.warning if notification.is_error else logger.info
        log("[%s] %s: %s", self.owner, notification.title, notification.description)

    # -------------------------------------------------------------------------
    def drain(self) -> list[Notification]:
        drained, self.pending = self.pending, []
        return drained

    # -------------------------------------------------------------------------
    def __call__(self, notification: Notification) -> None:
        self.publish(notification)
