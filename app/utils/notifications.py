import logging

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Tells the owning user about changes to their pledges.

    Delivery (SMS / push) is not wired up yet; messages are only logged. Callers
    treat every method as fire-and-forget.
    """

    @staticmethod
    def notify_entry_created(user, entry) -> None:
        if not getattr(user, "mobile", None):
            return
        logger.info(
            "[MOBILE NOTIFICATION] New entry for %s (%s): %s - ₹%s",
            user.name, user.mobile, entry.description, entry.total_amount,
        )

    @staticmethod
    def notify_payment_recorded(user, entry, payment: dict) -> None:
        if not getattr(user, "mobile", None):
            return
        logger.info(
            "[MOBILE NOTIFICATION] Payment recorded for %s (%s): ₹%s via %s, receipt %s",
            user.name, user.mobile, payment.get("amount"), payment.get("mode"), payment.get("receipt_no"),
        )

    @staticmethod
    def notify_payment_status_changed(user, entry, old_status: str, new_status: str) -> None:
        if not getattr(user, "mobile", None):
            return

        if new_status == "partial":
            status_message = "Partial payment received"
        elif new_status == "full":
            status_message = "Payment completed in full"
        else:
            status_message = f"Payment status is now {new_status}"

        logger.info(
            "[MOBILE NOTIFICATION] %s for %s (%s): %s -> %s, received ₹%s",
            status_message, user.name, user.mobile, old_status, new_status, entry.received_amount,
        )


def safe_notify(fn, *args) -> None:
    """Runs a notification hook; a failure is logged and never reaches the caller."""
    try:
        fn(*args)
    except Exception:
        logger.exception("notification %s failed", getattr(fn, "__name__", fn))
