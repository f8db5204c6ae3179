from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10-19.v1"
    database_url: str = "sqlite:///./facility_inspections.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Auth (identity + role only; real auth lives upstream) ----
    auth_mode: str = "dev"  # dev|header
    dev_auto_provision: bool = True
    dev_header_user_email: str = "X-User-Email"
    dev_header_user_role: str = "X-User-Role"

    # ---- Lifecycle ----
    manager_completion_self_approves: bool = True
    recommendation_title_max_chars: int = 100

    # ---- Recurrence ----
    recurrence_lookahead_days: int = 7
    recurrence_cron_hour: int = 2
    recurrence_cron_minute: int = 0
    recurrence_startup_delay_seconds: int = 5
    recurrence_preview_max: int = 20
    timezone: str = "UTC"

    # ---- Overdue sweep ----
    overdue_cron_hour: int = 8
    overdue_cron_minute: int = 0

    # ---- Notifications ----
    notification_max_retries: int = 3
    notification_retry_base_seconds: int = 5
    notification_retry_max_seconds: int = 120
    frontend_url: str = "http://localhost:5173"

    # ---- Celery ----
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
