"""Admin email notifications for new income and expense records.

The email itself is sent by the serverless ``send-notification-email``
function; this module only triggers it and logs the outcome. A failed
trigger is logged and reported as ``False``, it never fails the write that
caused it.
"""
import time
from typing import Any, Dict, Optional

import requests
from loguru import logger

from config.settings import settings

FUNCTION_NAME = "send-notification-email"


class NotificationClient:
    """HTTP client for the email notification function.

    Args:
        db: DatabaseManager used to log sent notifications.
        base_url: Functions base URL, ``settings.functions_base_url`` when None.
        api_key: Bearer key, ``settings.functions_api_key`` when None.
        timeout: Request timeout in seconds.
        enabled: When False every call is a no-op returning False.
        app_url: Web app address sent as ``appUrl`` for email links,
            ``settings.frontend_url`` when None.
    """

    def __init__(self, db=None, base_url: Optional[str] = None,
                 api_key: Optional[str] = None,
                 timeout: Optional[float] = None,
                 enabled: Optional[bool] = None,
                 app_url: Optional[str] = None) -> None:
        self.db = db
        self.base_url = (base_url or settings.functions_base_url).rstrip("/")
        self.api_key = settings.functions_api_key if api_key is None else api_key
        self.timeout = timeout or settings.notification_timeout
        self.enabled = settings.notifications_enabled if enabled is None else enabled
        self.app_url = (app_url or settings.frontend_url).rstrip("/")

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{FUNCTION_NAME}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def send(self, record_type: str, record_id: Any, user_id: Any,
             amount: float, name: str, record_date: Any) -> bool:
        """Trigger the email function.

        Args:
            record_type: ``income`` or ``expense``.
            record_id: Id of the new record.
            user_id: Creator profile id.
            amount: Payment (income) or cost (expense).
            name: Record name.
            record_date: Record date (or month label for expenses).

        Returns:
            True when the function accepted the request.
        """
        if not self.enabled:
            logger.debug(f"Notifications disabled, skipping {record_type} {record_id}")
            return False

        payload = {
            "type": record_type,
            "recordId": record_id,
            "userId": user_id,
            "amount": amount,
            "name": name,
            "date": record_date,
            "appUrl": self.app_url,
        }
        start = time.perf_counter()
        try:
            response = requests.post(
                self.endpoint, json=payload, headers=self._headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
            result = response.json() if response.content else {}
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Email notification for {record_type} {record_id} failed: {e}")
            return False

        duration = (time.perf_counter() - start) * 1000
        logger.info(
            f"Email notification sent for {record_type} {record_id} "
            f"({duration:.0f} ms)"
        )
        self._log(record_type, record_id, user_id, result)
        return True

    def _log(self, record_type: str, record_id: Any, user_id: Any,
             result: Dict[str, Any]) -> None:
        if self.db is None:
            return
        subject = (
            f"New {'Income' if record_type == 'income' else 'Expense'} "
            f"Added to {settings.app_name}"
        )
        try:
            self.db.log_notification(
                record_type=record_type,
                record_id=record_id if isinstance(record_id, int) else None,
                user_id=user_id if isinstance(user_id, int) else None,
                recipients_count=int(result.get("sent", 0) or 0),
                failed_count=int(result.get("failed", 0) or 0),
                subject=result.get("subject") or subject,
            )
        except Exception as e:
            logger.warning(f"Could not record email notification: {e}")

    def notify_new_income(self, income: Dict[str, Any]) -> bool:
        return self.send(
            "income", income.get("id"), income.get("user_id"),
            income.get("payment") or 0, income.get("name") or "Workshop Income",
            income.get("date") or income.get("created_at"),
        )

    def notify_new_expense(self, expense: Dict[str, Any]) -> bool:
        return self.send(
            "expense", expense.get("id"), expense.get("user_id"),
            expense.get("cost") or 0, expense.get("name") or "Workshop Expense",
            expense.get("expense_date") or expense.get("month") or expense.get("created_at"),
        )
