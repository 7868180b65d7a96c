"""Settings for the server."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = Field("baseserver", validation_alias="APP_NAME")
    host: str = Field("0.0.0.0", validation_alias="HOST")
    port: int = Field(8080, gt=0, le=65535, validation_alias="PORT")

    cors_origins: list[str] = Field(
        ["*", "http://api.myapp.com", "http://web.myapp.com"],
        validation_alias="CORS_ORIGINS",
    )
    cors_preflight_max_age: int = Field(5, validation_alias="CORS_PREFLIGHT_MAX_AGE")
    cors_allow_headers: list[str] = Field(["API-Token"], validation_alias="CORS_ALLOW_HEADERS")
    cors_expose_headers: list[str] = Field(["API-Token-Expiry"], validation_alias="CORS_EXPOSE_HEADERS")

    # Captures response bodies into audit entries; off by default since bodies may carry user data.
    audit_body: bool = Field(False, validation_alias="AUDIT_BODY")
    max_body_size: int = Field(1_048_576, validation_alias="MAX_BODY_SIZE")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(False, validation_alias="LOG_JSON")

    enable_docs: bool = Field(False, validation_alias="ENABLE_DOCS")
    startup_timeout_seconds: float = Field(10.0, validation_alias="STARTUP_TIMEOUT_SECONDS")
