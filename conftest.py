from datetime import datetime

import pytest

from library_system.services.catalog_service import CatalogService
from library_system.services.loan_ids import CounterLoanIdGenerator
from library_system.services.loan_service import LoanService
from library_system.services.notification_service import NotificationService
from library_system.services.user_service import UserService
from library_system.storage.caching import CachingStorage
from library_system.storage.file import FileStorage
from library_system.storage.memory import InMemoryStorage
from library_system.storage.sql import SqlStorage
from library_system.utils.date_time import DateTimeUtils


class FixedDateTimeUtils(DateTimeUtils):
    """Clock pinned to a given instant; today() is that instant's midnight."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def today(self) -> datetime:
        return self.current.replace(hour=0, minute=0, second=0, microsecond=0)


class RecordingNotificationService(NotificationService):
    def __init__(self):
        self.sent = []

    def send_notification(self, user_id: str, message: str) -> None:
        self.sent.append((user_id, message))


@pytest.fixture
def memory_storage():
    return InMemoryStorage()


@pytest.fixture
def file_storage(tmp_path):
    return FileStorage(str(tmp_path / "data"))


@pytest.fixture
def caching_storage(tmp_path):
    return CachingStorage(str(tmp_path / "data"))


@pytest.fixture
def sql_storage(tmp_path):
    storage = SqlStorage(f"sqlite:///{tmp_path / 'library.db'}")
    yield storage
    storage.close()


@pytest.fixture(params=["memory", "file", "caching", "sql"])
def storage(request):
    # Every backend must satisfy the same contract
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def clock():
    return FixedDateTimeUtils(datetime(2024, 1, 1, 10, 30, 0))


@pytest.fixture
def notifier():
    return RecordingNotificationService()


@pytest.fixture
def catalog(memory_storage):
    return CatalogService(memory_storage)


@pytest.fixture
def users(memory_storage):
    return UserService(memory_storage)


@pytest.fixture
def loans(catalog, users, memory_storage, notifier, clock):
    return LoanService(catalog, users, memory_storage, notifier, clock,
                       default_loan_duration_days=14, id_generator=CounterLoanIdGenerator())


@pytest.fixture
def stocked(catalog, users):
    """One user u1 and one available book b1 by a1."""
    users.add_user("u1", "Ada")
    catalog.add_book("b1", "Dune", "a1", "Frank Herbert", "9780441013593", 1965)
    return catalog, users


@pytest.fixture
def backend_loans(storage, notifier, clock):
    """A loan service wired to each backend in turn, stocked like ``stocked``."""
    catalog = CatalogService(storage)
    users = UserService(storage)
    users.add_user("u1", "Ada")
    catalog.add_book("b1", "Dune", "a1", "Frank Herbert", "9780441013593", 1965)
    return LoanService(catalog, users, storage, notifier, clock,
                       default_loan_duration_days=14, id_generator=CounterLoanIdGenerator())
