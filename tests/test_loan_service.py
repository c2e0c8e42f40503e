from datetime import datetime, timedelta

import pytest

from library_system.book import AvailabilityStatus
from library_system.exceptions import InvalidArgumentError, NotFoundError, OperationFailedError
from library_system.loan_record import LoanRecord
from library_system.services.loan_service import LoanService


def test_borrow_sets_due_date_and_status(loans, stocked, clock):
    catalog, _ = stocked

    loan = loans.borrow_item("u1", "b1")

    assert loan.id == "loan_1"
    assert loan.loan_date == clock.now()
    assert loan.due_date == loan.loan_date + timedelta(days=14)
    assert loan.is_active
    assert catalog.find_item_by_id("b1").status == AvailabilityStatus.BORROWED
    assert loans.storage.load_loan_record("loan_1") == loan


def test_borrow_then_return(loans, stocked, clock):
    catalog, _ = stocked
    loans.borrow_item("u1", "b1")
    clock.current += timedelta(days=3)

    closed = loans.return_item("u1", "b1")

    assert closed.return_date == clock.now()
    assert closed.return_date >= closed.loan_date
    assert catalog.find_item_by_id("b1").status == AvailabilityStatus.AVAILABLE
    assert not loans.storage.load_loan_record(closed.id).is_active


def test_second_borrow_of_same_item_fails(loans, stocked):
    loans.borrow_item("u1", "b1")
    with pytest.raises(OperationFailedError):
        loans.borrow_item("u1", "b1")
    assert len(loans.get_loan_history_for_item("b1")) == 1


def test_borrow_unavailable_item_changes_nothing(loans, stocked):
    catalog, _ = stocked
    catalog.update_item_status("b1", AvailabilityStatus.MAINTENANCE)

    with pytest.raises(OperationFailedError, match="not available for borrowing"):
        loans.borrow_item("u1", "b1")

    assert loans.get_loan_history_for_item("b1") == []
    assert catalog.find_item_by_id("b1").status == AvailabilityStatus.MAINTENANCE


def test_existing_active_loan_blocks_borrow_even_if_item_marked_available(loans, stocked):
    catalog, _ = stocked
    loans.borrow_item("u1", "b1")
    catalog.update_item_status("b1", AvailabilityStatus.AVAILABLE)

    with pytest.raises(OperationFailedError, match="has already borrowed"):
        loans.borrow_item("u1", "b1")


def test_borrow_missing_user_or_item(loans, stocked):
    with pytest.raises(NotFoundError, match="User with ID 'ghost' not found"):
        loans.borrow_item("ghost", "b1")
    with pytest.raises(NotFoundError, match="Library item with ID 'ghost' not found"):
        loans.borrow_item("u1", "ghost")
    with pytest.raises(InvalidArgumentError):
        loans.borrow_item("", "b1")


def test_return_without_active_loan(loans, stocked):
    with pytest.raises(NotFoundError, match="No active loan found"):
        loans.return_item("u1", "b1")

    loans.borrow_item("u1", "b1")
    loans.return_item("u1", "b1")
    with pytest.raises(NotFoundError):
        loans.return_item("u1", "b1")


def test_item_status_failure_after_loan_save_leaves_loan_written(loans, stocked, monkeypatch):
    catalog, _ = stocked

    def fail(item_id, status):
        raise OperationFailedError("status write failed")

    monkeypatch.setattr(catalog, "update_item_status", fail)

    with pytest.raises(OperationFailedError, match="status write failed"):
        loans.borrow_item("u1", "b1")

    # The loan record is persisted while the item still reads AVAILABLE.
    assert len(loans.get_active_loans_for_user("u1")) == 1
    assert catalog.find_item_by_id("b1").status == AvailabilityStatus.AVAILABLE


def test_history_queries(loans, stocked):
    catalog, users = stocked
    catalog.add_book("b2", "Dune Messiah", "a1", "Frank Herbert", "222", 1969)
    loans.borrow_item("u1", "b1")
    loans.borrow_item("u1", "b2")
    loans.return_item("u1", "b1")

    assert [l.item_id for l in loans.get_active_loans_for_user("u1")] == ["b2"]
    assert len(loans.get_loan_history_for_user("u1")) == 2
    assert len(loans.get_loan_history_for_item("b1")) == 1


def test_process_overdue_items(loans, stocked, clock, notifier):
    clock.current = datetime(2024, 1, 5, 15, 0, 0)
    storage = loans.storage
    storage.save_loan_record(LoanRecord("loan_7", "b1", "u1", datetime(2023, 12, 18),
                                        datetime(2024, 1, 1)))
    storage.save_loan_record(LoanRecord("loan_8", "b1", "u1", datetime(2023, 12, 27),
                                        datetime(2024, 1, 10)))

    notified = loans.process_overdue_items()

    assert [r.id for r in notified] == ["loan_7"]
    assert notifier.sent == [(
        "u1",
        "Dear Ada, the item 'Dune' (Loan ID: loan_7) was due on 2024-01-01. "
        "Please return it as soon as possible.",
    )]


def test_overdue_uses_midnight_not_now(loans, stocked, clock, notifier):
    clock.current = datetime(2024, 1, 5, 23, 0, 0)
    loans.storage.save_loan_record(LoanRecord("loan_1", "b1", "u1", datetime(2024, 1, 1),
                                              datetime(2024, 1, 5, 8, 0, 0)))

    assert loans.process_overdue_items() == []


def test_overdue_placeholders_and_rerun(loans, clock, notifier):
    clock.current = datetime(2024, 2, 1)
    loans.storage.save_loan_record(LoanRecord("loan_1", "gone", "nobody", datetime(2024, 1, 1),
                                              datetime(2024, 1, 2)))

    loans.process_overdue_items()
    loans.process_overdue_items()

    assert len(notifier.sent) == 2
    assert notifier.sent[0][1].startswith("Dear Unknown User, the item 'Unknown Item'")


def test_returned_loans_are_not_overdue(loans, stocked, clock, notifier):
    loans.borrow_item("u1", "b1")
    loans.return_item("u1", "b1")
    clock.current += timedelta(days=60)

    assert loans.process_overdue_items() == []
    assert notifier.sent == []


def test_constructor_validation(catalog, users, memory_storage, notifier, clock):
    with pytest.raises(InvalidArgumentError, match="Default loan duration must be positive"):
        LoanService(catalog, users, memory_storage, notifier, clock, default_loan_duration_days=0)
    with pytest.raises(InvalidArgumentError, match="Notification service cannot be None"):
        LoanService(catalog, users, memory_storage, None, clock)


def test_custom_id_generator(catalog, users, memory_storage, notifier, clock, stocked):
    service = LoanService(catalog, users, memory_storage, notifier, clock,
                          id_generator=lambda: "fixed-id")
    assert service.borrow_item("u1", "b1").id == "fixed-id"


def test_borrow_and_return_on_every_backend(backend_loans, clock):
    catalog = backend_loans.catalog
    loan = backend_loans.borrow_item("u1", "b1")
    assert catalog.find_item_by_id("b1").status == AvailabilityStatus.BORROWED
    assert backend_loans.storage.load_loan_record(loan.id).is_active

    clock.current += timedelta(days=2)
    closed = backend_loans.return_item("u1", "b1")

    assert closed.return_date >= closed.loan_date
    assert catalog.find_item_by_id("b1").status == AvailabilityStatus.AVAILABLE
    stored = backend_loans.storage.load_loan_record(loan.id)
    assert stored.return_date == clock.now()
    assert backend_loans.get_active_loans_for_user("u1") == []


def test_duplicate_borrow_rejected_on_every_backend(backend_loans):
    backend_loans.borrow_item("u1", "b1")

    with pytest.raises(OperationFailedError):
        backend_loans.borrow_item("u1", "b1")

    assert len(backend_loans.get_loan_history_for_item("b1")) == 1


def test_process_overdue_items_on_every_backend(backend_loans, clock, notifier):
    clock.current = datetime(2024, 1, 5, 15, 0, 0)
    storage = backend_loans.storage
    storage.save_loan_record(LoanRecord("loan_7", "b1", "u1", datetime(2023, 12, 18),
                                        datetime(2024, 1, 1)))
    storage.save_loan_record(LoanRecord("loan_8", "b1", "u1", datetime(2023, 12, 27),
                                        datetime(2024, 1, 10)))

    notified = backend_loans.process_overdue_items()

    assert [r.id for r in notified] == ["loan_7"]
    assert len(notifier.sent) == 1
    assert notifier.sent[0][0] == "u1"
    assert "(Loan ID: loan_7) was due on 2024-01-01" in notifier.sent[0][1]
