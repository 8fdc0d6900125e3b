"""Income and expense record operations scoped by the caller's role.

Users read and change only the records they created; admins see and
change everything. Creating a record triggers an admin email notification.
"""
from typing import Any, Dict, List, Optional

from loguru import logger

from auth.context import AuthContext
from errors import NotFoundError, ValidationError

RECORD_KINDS = ("income", "expense")


class RecordService:
    """CRUD over incomes and expenses for one ``AuthContext`` per call.

    Args:
        db: DatabaseManager.
        notifier: NotificationClient, or None to skip notifications.
    """

    def __init__(self, db, notifier=None) -> None:
        self.db = db
        self.notifier = notifier

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in RECORD_KINDS:
            raise NotFoundError(f"Unknown record type: {kind}")

    def _owner_for_create(self, auth: AuthContext, data: Dict[str, Any]) -> int:
        requested = data.get("user_id")
        if auth.is_admin and requested not in (None, ""):
            return int(requested)
        return auth.profile_id

    def create(self, kind: str, auth: AuthContext,
               data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a record owned by the caller (admins may name an owner).

        Raises:
            ValidationError: Invalid input.
        """
        self._check_kind(kind)
        owner = self._owner_for_create(auth, data)
        try:
            if kind == "income":
                record = self.db.create_income(data, owner)
            else:
                record = self.db.create_expense(data, owner)
        except ValueError as e:
            raise ValidationError(str(e))
        logger.info(f"{kind.capitalize()} {record['id']} created by {auth.profile_id}")

        if self.notifier is not None:
            if kind == "income":
                self.notifier.notify_new_income(record)
            else:
                self.notifier.notify_new_expense(record)
        return record

    def list(self, kind: str, auth: AuthContext) -> List[Dict[str, Any]]:
        self._check_kind(kind)
        if kind == "income":
            return self.db.list_incomes(auth.scope_user_id)
        return self.db.list_expenses(auth.scope_user_id)

    def get(self, kind: str, auth: AuthContext, record_id: int) -> Dict[str, Any]:
        """Fetch one record.

        Records outside the caller's scope are reported as missing.

        Raises:
            NotFoundError: Missing or not visible.
        """
        self._check_kind(kind)
        record = (self.db.get_income(record_id) if kind == "income"
                  else self.db.get_expense(record_id))
        if record is None or not auth.can_modify(record["user_id"]):
            raise NotFoundError(f"{kind.capitalize()} not found")
        return record

    def update(self, kind: str, auth: AuthContext, record_id: int,
               data: Dict[str, Any]) -> Dict[str, Any]:
        """Overwrite a record the caller may modify.

        Raises:
            NotFoundError / ValidationError
        """
        self.get(kind, auth, record_id)
        data = {k: v for k, v in data.items() if k not in ("id", "user_id", "created_at")}
        try:
            if kind == "income":
                record = self.db.update_income(record_id, data)
            else:
                record = self.db.update_expense(record_id, data)
        except ValueError as e:
            raise ValidationError(str(e))
        if record is None:
            raise NotFoundError(f"{kind.capitalize()} not found")
        return record

    def delete(self, kind: str, auth: AuthContext, record_id: int) -> None:
        self.get(kind, auth, record_id)
        deleted = (self.db.delete_income(record_id) if kind == "income"
                   else self.db.delete_expense(record_id))
        if not deleted:
            raise NotFoundError(f"{kind.capitalize()} not found")
        logger.info(f"{kind.capitalize()} {record_id} deleted by {auth.profile_id}")
