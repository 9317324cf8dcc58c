from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Case Brief API"
    app_env: str = "development"
    cors_origins: str = "http://localhost:5173"
    cors_allow_credentials: bool = True
    log_level: str = "INFO"
    request_id_header: str = "X-Request-ID"

    aws_region: str = "us-east-1"
    # Foundation model ID; some accounts need an inference profile ID instead (e.g. `eu.amazon.nova-pro-v1:0`).
    bedrock_model_id: str = "amazon.nova-pro-v1:0"
    generation_temperature: float = 0.3
    generation_max_tokens: int = 2048

    min_extracted_chars: int = 300
    max_source_chars: int = 25_000

    storage_backend: str = "local"  # memory|local|s3
    storage_path: str = "data/case_briefs.json"
    s3_bucket: str = "casebrief-dev"
    s3_key: str = "casebrief/documents.json"

    max_upload_files: int = 10
    max_upload_file_bytes: int = 20 * 1024 * 1024

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


settings = Settings()
