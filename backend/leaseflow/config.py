from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10.v1"
    database_url: str = "sqlite:///./leaseflow.db"

    # SERIALIZABLE | REPEATABLE READ | READ COMMITTED ... (None = driver default)
    db_isolation_level: str | None = None

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Workflow windows (days) ----
    application_expiration_days: int = 30
    lease_offer_expiration_days: int = 30
    lease_activation_window_days: int = 30
    lease_expiring_window_days: int = 60

    # ---- Auth / tenancy ----
    auth_mode: str = "dev"  # dev only for now
    dev_auto_provision: bool = True

    # Dev header names
    dev_header_org_slug: str = "X-Org-Slug"
    dev_header_user_email: str = "X-User-Email"
    dev_header_user_role: str = "X-User-Role"

    # Actor id recorded for scheduled sweeps
    system_actor: str = "system"

    # ---- Celery ----
    celery_broker_url: str | None = None
    celery_result_backend: str | None = None
    sweep_hour_utc: int = 2

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")

        for name in (
            "application_expiration_days",
            "lease_offer_expiration_days",
            "lease_activation_window_days",
            "lease_expiring_window_days",
        ):
            if int(getattr(self, name)) < 0:
                raise ValueError(f"{name} must be >= 0")


settings = Settings()
