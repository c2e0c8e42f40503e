import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # Storage settings
    # One of: memory, file, caching, sql
    storage_backend: str = os.getenv("LIBRARY_STORAGE_BACKEND", "memory")
    data_dir: str = os.getenv("LIBRARY_DATA_DIR", "data")  # File / caching backends
    database_url: str = os.getenv("LIBRARY_DATABASE_URL", "sqlite:///library.db")  # SQL backend
    create_schema: bool = _env_flag("LIBRARY_CREATE_SCHEMA", "True")

    # Loan settings
    default_loan_duration_days: int = int(os.getenv("LIBRARY_LOAN_DURATION_DAYS", "14"))
    # counter (process-local, seeded from storage) or uuid
    loan_id_scheme: str = os.getenv("LIBRARY_LOAN_ID_SCHEME", "counter")

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Loans")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    debug: bool = _env_flag("DEBUG")


settings = Settings()
