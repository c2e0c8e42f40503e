"""
Composition root: builds the configured storage backend and wires the services.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from library_system.config import Settings, settings as default_settings
from library_system.exceptions import InvalidArgumentError
from library_system.services.catalog_service import CatalogService
from library_system.services.loan_ids import CounterLoanIdGenerator, UuidLoanIdGenerator
from library_system.services.loan_service import LoanService
from library_system.services.notification_service import ConsoleNotificationService, NotificationService
from library_system.services.user_service import UserService
from library_system.storage.base import StorageBackend
from library_system.storage.caching import CachingStorage
from library_system.storage.file import FileStorage
from library_system.storage.memory import InMemoryStorage
from library_system.storage.sql import SqlStorage
from library_system.utils.date_time import DateTimeUtils
from library_system.utils.logging_setup import configure_logging

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("memory", "file", "caching", "sql")


@dataclass
class AppServices:
    storage: StorageBackend
    catalog: CatalogService
    users: UserService
    notifications: NotificationService
    loans: LoanService

    def persist(self) -> None:
        """Flush a caching backend to its files. Other backends write through already."""
        if isinstance(self.storage, CachingStorage):
            self.storage.persist_all()

    def close(self) -> None:
        self.storage.close()


def create_storage(config: Settings) -> StorageBackend:
    backend = (config.storage_backend or "").strip().lower()
    if backend == "memory":
        return InMemoryStorage()
    if backend == "file":
        return FileStorage(config.data_dir)
    if backend == "caching":
        return CachingStorage(config.data_dir)
    if backend == "sql":
        return SqlStorage(config.database_url, create_schema=config.create_schema)
    raise InvalidArgumentError(
        f"Unknown storage backend {config.storage_backend!r}; expected one of {', '.join(STORAGE_BACKENDS)}")


def create_id_generator(config: Settings, storage: StorageBackend):
    scheme = (config.loan_id_scheme or "").strip().lower()
    if scheme == "uuid":
        return UuidLoanIdGenerator()
    if scheme == "counter":
        generator = CounterLoanIdGenerator()
        # Continue after ids already in the store so a restart does not reissue them.
        generator.seed_from(record.id for record in storage.load_all_loan_records())
        return generator
    raise InvalidArgumentError(f"Unknown loan id scheme {config.loan_id_scheme!r}")


def build_services(settings: Optional[Settings] = None,
                   notification_service: Optional[NotificationService] = None,
                   date_time_utils: Optional[DateTimeUtils] = None) -> AppServices:
    config = settings or default_settings
    configure_logging("DEBUG" if config.debug else config.log_level)

    storage = create_storage(config)
    catalog = CatalogService(storage)
    users = UserService(storage)
    notifications = notification_service or ConsoleNotificationService()
    loans = LoanService(
        catalog,
        users,
        storage,
        notifications,
        date_time_utils or DateTimeUtils(),
        default_loan_duration_days=config.default_loan_duration_days,
        id_generator=create_id_generator(config, storage),
    )
    logger.info("%s started with %s storage", config.app_name, config.storage_backend)
    return AppServices(storage, catalog, users, notifications, loans)
