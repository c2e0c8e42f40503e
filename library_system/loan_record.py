from __future__ import annotations

from datetime import datetime
from typing import Optional

from library_system.exceptions import InvalidArgumentError
from library_system.utils.validators import TextValidator


class LoanRecord:
    """One borrow transaction.

    id, item_id, user_id and loan_date are fixed at creation. due_date and
    return_date may change, but never to a value before loan_date.
    """

    def __init__(self, id: str, item_id: str, user_id: str, loan_date: datetime, due_date: datetime,
                 return_date: Optional[datetime] = None) -> None:
        self._id = TextValidator.require_id(id, "LoanRecord")
        self._item_id = TextValidator.require_id(item_id, "LoanRecord Item")
        self._user_id = TextValidator.require_id(user_id, "LoanRecord User")
        if loan_date is None or due_date is None:
            raise InvalidArgumentError("Loan and due dates are required.")
        self._loan_date = loan_date
        self._due_date = self._check_due_date(due_date)
        self._return_date = None
        if return_date is not None:
            self.return_date = return_date

    def _check_due_date(self, due_date: datetime) -> datetime:
        if due_date < self._loan_date:
            raise InvalidArgumentError("Due date cannot be before loan date.")
        return due_date

    @property
    def id(self) -> str:
        return self._id

    @property
    def item_id(self) -> str:
        return self._item_id

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def loan_date(self) -> datetime:
        return self._loan_date

    @property
    def due_date(self) -> datetime:
        return self._due_date

    @due_date.setter
    def due_date(self, value: datetime) -> None:
        self._due_date = self._check_due_date(value)

    @property
    def return_date(self) -> Optional[datetime]:
        return self._return_date

    @return_date.setter
    def return_date(self, value: datetime) -> None:
        if value is None or value < self._loan_date:
            raise InvalidArgumentError("Return date cannot be before loan date.")
        self._return_date = value

    @property
    def is_active(self) -> bool:
        return self._return_date is None

    def is_overdue(self, as_of: datetime) -> bool:
        """True for an active loan whose due date precedes as_of."""
        return self.is_active and self._due_date < as_of

    def clone(self) -> "LoanRecord":
        return LoanRecord(self._id, self._item_id, self._user_id, self._loan_date,
                          self._due_date, self._return_date)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LoanRecord):
            return NotImplemented
        return (self._id == other._id and self._item_id == other._item_id
                and self._user_id == other._user_id and self._loan_date == other._loan_date
                and self._due_date == other._due_date and self._return_date == other._return_date)

    def __repr__(self) -> str:  # pragma: no cover - repr formatting trivial
        return (f"LoanRecord(id={self._id!r}, item_id={self._item_id!r}, user_id={self._user_id!r}, "
                f"loan_date={self._loan_date!r}, due_date={self._due_date!r}, "
                f"return_date={self._return_date!r})")
