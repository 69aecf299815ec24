import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # Storage
    storage_backend: str = os.getenv("LIBRARY_STORAGE", "sqlite")  # sqlite | memory
    db_file: str = os.getenv("LIBRARY_DB_FILE", "library.db")
    storage_key: str = os.getenv("LIBRARY_STORAGE_KEY", "library-books")

    # Loans
    strict_checkout: bool = _env_bool("LIBRARY_STRICT_CHECKOUT")
    loan_days: int = int(os.getenv("LIBRARY_LOAN_DAYS", "14"))

    # Export
    export_dir: str = os.getenv("LIBRARY_EXPORT_DIR", ".")

    # Application
    app_name: str = os.getenv("APP_NAME", "Library Manager")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    log_level: str = os.getenv("LIBRARY_LOG_LEVEL", "WARNING")


settings = Settings()
