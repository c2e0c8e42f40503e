from datetime import datetime

import pytest

from library_system.author import Author
from library_system.book import AvailabilityStatus, Book
from library_system.loan_record import LoanRecord
from library_system.user import User


def make_book(author, item_id="b1", title="Dune"):
    return Book(item_id, title, author, "9780441013593", 1965)


def make_loan(loan_id="loan_1", item_id="b1", user_id="u1", return_date=None):
    return LoanRecord(loan_id, item_id, user_id, datetime(2024, 1, 1, 9, 0, 0),
                      datetime(2024, 1, 15, 9, 0, 0), return_date)


def test_author_round_trip(storage):
    author = Author("a1", "Frank Herbert")
    storage.save_author(author)

    assert storage.load_author("a1") == author
    assert storage.load_all_authors() == [author]


def test_user_round_trip(storage):
    user = User("u1", "Ada")
    storage.save_user(user)

    assert storage.load_user("u1") == user
    assert storage.load_all_users() == [user]


def test_item_round_trip(storage):
    author = Author("a1", "Frank Herbert")
    storage.save_author(author)
    book = make_book(author)
    book.status = AvailabilityStatus.MAINTENANCE
    storage.save_library_item(book)

    loaded = storage.load_library_item("b1")
    assert loaded == book
    assert loaded.status == AvailabilityStatus.MAINTENANCE
    assert loaded.author_id == "a1"


def test_loan_round_trip(storage):
    open_loan = make_loan()
    closed_loan = make_loan("loan_2", return_date=datetime(2024, 1, 3, 12, 0, 0))
    storage.save_loan_record(open_loan)
    storage.save_loan_record(closed_loan)

    assert storage.load_loan_record("loan_1") == open_loan
    assert storage.load_loan_record("loan_2") == closed_loan
    assert storage.load_loan_record("loan_1").return_date is None


def test_save_is_upsert(storage):
    storage.save_user(User("u1", "Ada"))
    storage.save_user(User("u1", "Ada Lovelace"))

    users = storage.load_all_users()
    assert len(users) == 1
    assert users[0].name == "Ada Lovelace"


def test_missing_entities_load_as_none_or_empty(storage):
    assert storage.load_author("nope") is None
    assert storage.load_user("nope") is None
    assert storage.load_library_item("nope") is None
    assert storage.load_loan_record("nope") is None
    assert storage.load_all_library_items() == []
    assert storage.load_loan_records_by_user("nope") == []
    assert storage.load_loan_records_by_item("nope") == []


def test_delete_missing_is_noop(storage):
    storage.delete_author("nope")
    storage.delete_user("nope")
    storage.delete_library_item("nope")
    storage.delete_loan_record("nope")


def test_delete_removes_only_target(storage):
    storage.save_user(User("u1", "Ada"))
    storage.save_user(User("u2", "Grace"))

    storage.delete_user("u1")

    assert storage.load_user("u1") is None
    assert storage.load_user("u2") == User("u2", "Grace")


def test_loans_filtered_by_user_and_item(storage):
    storage.save_loan_record(make_loan("loan_1", item_id="b1", user_id="u1"))
    storage.save_loan_record(make_loan("loan_2", item_id="b2", user_id="u1"))
    storage.save_loan_record(make_loan("loan_3", item_id="b1", user_id="u2"))

    by_user = sorted(r.id for r in storage.load_loan_records_by_user("u1"))
    by_item = sorted(r.id for r in storage.load_loan_records_by_item("b1"))

    assert by_user == ["loan_1", "loan_2"]
    assert by_item == ["loan_1", "loan_3"]
    assert len(storage.load_all_loan_records()) == 3


def test_update_loan_record_sets_return_date(storage):
    storage.save_loan_record(make_loan())
    record = storage.load_loan_record("loan_1")
    record.return_date = datetime(2024, 1, 10, 8, 0, 0)

    storage.update_loan_record(record)

    assert storage.load_loan_record("loan_1").return_date == datetime(2024, 1, 10, 8, 0, 0)


def test_loaded_item_is_independent_copy(storage):
    author = Author("a1", "Frank Herbert")
    storage.save_author(author)
    book = make_book(author)
    storage.save_library_item(book)

    book.title = "Changed after save"
    loaded = storage.load_library_item("b1")
    loaded.status = AvailabilityStatus.BORROWED

    reloaded = storage.load_library_item("b1")
    assert reloaded.title == "Dune"
    assert reloaded.status == AvailabilityStatus.AVAILABLE


def test_loaded_loan_is_independent_copy(storage):
    storage.save_loan_record(make_loan())
    loaded = storage.load_loan_record("loan_1")
    loaded.return_date = datetime(2024, 1, 2, 0, 0, 0)

    assert storage.load_loan_record("loan_1").is_active


def test_context_manager_returns_backend(storage):
    with storage as entered:
        entered.save_user(User("u1", "Ada"))
    assert entered is storage


@pytest.mark.parametrize("title", ['Title, "Quoted"', "Plain", "a,b,,c"])
def test_titles_with_delimiters_round_trip(storage, title):
    author = Author("a1", "Some, Author")
    storage.save_author(author)
    storage.save_library_item(make_book(author, title=title))

    assert storage.load_library_item("b1").title == title
    assert storage.load_author("a1").name == "Some, Author"
