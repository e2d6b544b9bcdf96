# WORKFLOW: Core configuration management for the Tariff Code Extraction service.
# Used by: API app wiring, extraction pipeline construction, oracle clients
# Configuration includes:
# - Oracle settings (Ollama endpoint, API key, OCR and extraction models)
# - Orchestration limits (concurrency cap, retries, backoff, delays, timeouts)
# - Chunking parameters (chunk size, overlap, minimum content)
# - API settings (prefix, CORS, upload limits)
# - Logging configuration
#
# Loaded at startup. The pipeline receives a Settings value at construction
# time and never reads the module-level instance itself.

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Oracle (Ollama-compatible endpoint)
    oracle_url: str = "https://ollama.com"
    oracle_api_key: Optional[str] = None
    oracle_requires_api_key: bool = True
    ocr_model: str = "qwen2.5vl:7b"
    extraction_model: str = "llama3.1:8b"
    oracle_temperature: float = 0.05
    oracle_max_tokens: int = 32000

    # Orchestration
    max_concurrent_units: int = 4
    max_retries: int = 2
    retry_backoff_seconds: float = 2.0
    retry_timeouts: bool = True
    batch_delay_seconds: float = 0.5
    call_timeout_seconds: float = 45.0

    # Chunking
    chunk_size: int = 35000
    chunk_overlap: int = 2000
    min_chunk_content: int = 100

    # Strategy
    multipass_min_chars_per_page: int = 500
    supplemental_pass_min_chars: int = 100

    # API
    api_v1_prefix: str = "/api/v1"
    project_name: str = "Tariff Code Extraction API"
    version: str = "1.0.0"
    max_upload_bytes: int = 50 * 1024 * 1024

    # Environment
    environment: str = "development"
    debug: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    # CORS
    allowed_origins: list[str] = ["*"]
    allowed_methods: list[str] = ["*"]
    allowed_headers: list[str] = ["*"]

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8001

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def oracle_configured(self) -> bool:
        """True when the oracle endpoint and, if required, its API key are set."""
        if not self.oracle_url or not self.ocr_model or not self.extraction_model:
            return False
        if self.oracle_requires_api_key and not self.oracle_api_key:
            return False
        return True


settings = Settings()
