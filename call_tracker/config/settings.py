"""Typed runtime settings with dotenv support and startup validation."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SettingsLoadError(RuntimeError):
    """Raised when runtime settings cannot be loaded or validated."""


class AppSettings(BaseSettings):
    """Application settings for the API runtime and run orchestration.

    Environment variable names map directly to field names in uppercase.
    Example: `data_dir` reads from `DATA_DIR`.

    Attributes:
        environment_name: Runtime environment label.
        application_host: Host interface for web server binding.
        application_port: Web server port.
        log_level: Root logging level name.
        data_dir: Directory holding the counter file and the records artifact.
        counter_file_name: File name of the persisted run counter.
        records_file_name: File name of the records artifact written by the fetch job.
        state_backend: Run state persistence backend (`file` or `database`).
        database_url: SQLAlchemy URL used by the `database` state backend.
        fetch_job_command: Optional shell-style command override for the fetch job.
        run_overlap_guard_enabled: Whether a trigger is rejected while a job is still running.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment_name: str = Field(default="development")
    application_host: str = Field(default="0.0.0.0")
    application_port: int = Field(default=4000, ge=1, le=65535)
    log_level: str = Field(default="INFO")
    data_dir: str = Field(default="data", min_length=1)
    counter_file_name: str = Field(default="counter.json", min_length=1)
    records_file_name: str = Field(default="clients.json", min_length=1)
    state_backend: str = Field(default="file")
    database_url: str = Field(default="sqlite:///data/counter.db")
    fetch_job_command: str | None = Field(default=None)
    run_overlap_guard_enabled: bool = Field(default=True)

    @field_validator("data_dir", "counter_file_name", "records_file_name", "database_url")
    @classmethod
    def _validate_non_empty_string(cls, value: str) -> str:
        stripped_value = value.strip()
        if not stripped_value:
            raise ValueError("value must not be blank")
        return stripped_value

    @field_validator("state_backend")
    @classmethod
    def _validate_state_backend(cls, value: str) -> str:
        normalized_value = value.strip().lower()
        if normalized_value not in {"file", "database"}:
            raise ValueError("state_backend must be one of: file, database")
        return normalized_value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized_value = value.strip().upper()
        if normalized_value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("log_level must be a standard logging level name")
        return normalized_value

    @field_validator("fetch_job_command")
    @classmethod
    def _validate_optional_command(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped_value = value.strip()
        return stripped_value or None

    def settings_data_path(self) -> Path:
        """Return the absolute data directory path.

        Returns:
            Path: Resolved data directory.
        """

        return Path(self.data_dir).expanduser().resolve()

    def settings_counter_path(self) -> Path:
        """Return the absolute counter file path.

        Returns:
            Path: Resolved counter file location.
        """

        return self.settings_data_path() / self.counter_file_name

    def settings_records_path(self) -> Path:
        """Return the absolute records artifact path.

        Returns:
            Path: Resolved records artifact location.
        """

        return self.settings_data_path() / self.records_file_name


class FetchJobSettings(BaseSettings):
    """Settings for the out-of-process fetch-and-notify job.

    One connection option must be complete: Supabase service-role credentials,
    a single `DB_URL`, or the individual `DB_*` parts.

    Attributes:
        log_level: Root logging level name.
        data_dir: Directory receiving the records artifact.
        records_file_name: File name of the records artifact.
        db_url: Optional SQLAlchemy URL of the source database.
        db_host: Source database host.
        db_port: Source database port.
        db_user: Source database user.
        db_password: Source database password.
        db_name: Source database name.
        supabase_url: Supabase project URL.
        supabase_service_role: Supabase service-role key.
        source_table_name: Table read by the SQL source.
        supabase_table_name: Table read by the Supabase REST source.
        n8n_webhook_url: Optional webhook receiving the fetched records.
        webhook_timeout_seconds: Webhook POST timeout.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    log_level: str = Field(default="INFO")
    data_dir: str = Field(default="data", min_length=1)
    records_file_name: str = Field(default="clients.json", min_length=1)
    db_url: str | None = Field(default=None)
    db_host: str | None = Field(default=None)
    db_port: int = Field(default=5432, ge=1, le=65535)
    db_user: str | None = Field(default=None)
    db_password: str | None = Field(default=None)
    db_name: str | None = Field(default=None)
    supabase_url: str | None = Field(default=None)
    supabase_service_role: str | None = Field(default=None)
    source_table_name: str = Field(default="clients", pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    supabase_table_name: str = Field(default="call_records", pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    n8n_webhook_url: str | None = Field(default=None)
    webhook_timeout_seconds: float = Field(default=15.0, gt=0)

    @field_validator(
        "db_url",
        "db_host",
        "db_user",
        "db_password",
        "db_name",
        "supabase_url",
        "supabase_service_role",
        "n8n_webhook_url",
    )
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped_value = value.strip()
        return stripped_value or None

    @model_validator(mode="after")
    def _validate_connection_option(self) -> "FetchJobSettings":
        if self.settings_uses_supabase() or self.db_url:
            return self
        if self.db_host and self.db_user and self.db_password and self.db_name:
            return self
        raise ValueError(
            "Missing DB connection info. Provide SUPABASE_URL & SUPABASE_SERVICE_ROLE "
            "OR DB_URL OR DB_HOST, DB_USER, DB_PASSWORD, DB_NAME."
        )

    def settings_uses_supabase(self) -> bool:
        """Return whether the Supabase REST source is configured."""

        return bool(self.supabase_url and self.supabase_service_role)

    def settings_records_path(self) -> Path:
        """Return the absolute records artifact path.

        Returns:
            Path: Resolved records artifact location.
        """

        return Path(self.data_dir).expanduser().resolve() / self.records_file_name


class DatabaseUrlSettings(BaseSettings):
    """Minimal settings model used by migration tooling.

    Attributes:
        database_url: SQLAlchemy URL of the run state database.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    database_url: str = Field(default="sqlite:///data/counter.db")


def config_load_settings() -> AppSettings:
    """Load and validate runtime settings from environment and dotenv.

    Returns:
        AppSettings: Validated runtime settings object.

    Raises:
        SettingsLoadError: Raised when settings are invalid.
    """

    try:
        return AppSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Startup configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error


def config_load_job_settings() -> FetchJobSettings:
    """Load and validate fetch job settings from environment and dotenv.

    Returns:
        FetchJobSettings: Validated job settings object.

    Raises:
        SettingsLoadError: Raised when no complete connection option is configured.
    """

    try:
        return FetchJobSettings()
    except ValidationError as error:
        raise SettingsLoadError(f"Fetch job configuration validation failed. Details: {error}") from error


def config_load_database_url() -> str:
    """Load and validate only the database URL setting.

    Returns:
        str: Non-empty database URL for migration tooling.

    Raises:
        SettingsLoadError: Raised when database URL cannot be loaded.
    """

    try:
        database_settings = DatabaseUrlSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Database URL configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error

    database_url = str(database_settings.database_url).strip()
    if not database_url:
        raise SettingsLoadError("Database URL configuration validation failed. DATABASE_URL must not be blank.")
    return database_url
