"""
Configuration Management

Settings are read once from environment variables (and an optional .env file)
at startup and passed explicitly into the services and app factories.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


_project_root = Path(__file__).resolve().parent.parent
_env_path = _project_root / ".env"
if _env_path.exists():
    load_dotenv(dotenv_path=str(_env_path))
else:
    load_dotenv()


FAIL_OPEN = "fail_open"
FAIL_CLOSED = "fail_closed"


@dataclass
class LLMConfig:
    """OpenRouter chat-completions configuration"""
    api_key: Optional[str] = None
    model_name: str = "mistralai/mistral-7b-instruct:free"
    endpoint: str = "https://openrouter.ai/api/v1"
    site_url: str = "http://localhost:3000"
    app_name: str = "AI Resume Analyzer"
    timeout_seconds: float = 120.0


@dataclass
class SupabaseConfig:
    """Supabase project configuration"""
    url: Optional[str] = None
    service_key: Optional[str] = None
    upload_log_table: str = "upload_logs"
    contact_table: str = "contact_submissions"
    # fail_open: a failed upload-log insert is logged and the request proceeds
    upload_log_failure_mode: str = FAIL_OPEN

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.service_key)


@dataclass
class UploadConfig:
    """Upload staging and extraction limits"""
    uploads_dir: Path = _project_root / "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024  # 10MB
    min_extracted_chars: int = 50


@dataclass
class TruncationConfig:
    """Character budgets applied before text is sent to the model"""
    max_total_chars: int = 24000
    max_resume_chars: int = 20000
    max_job_description_chars: int = 6000


@dataclass
class ServerConfig:
    """HTTP server configuration"""
    host: str = "0.0.0.0"
    port: int = 3001
    contact_port: int = 3000
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])


@dataclass
class Settings:
    """Main application configuration"""

    llm: LLMConfig = field(default_factory=LLMConfig)
    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    truncation: TruncationConfig = field(default_factory=TruncationConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    environment: str = "development"
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Create settings from environment variables.

        Missing credentials are allowed here; the services report them per
        request as configuration errors.

        Raises:
            ValueError: If a value is present but malformed
        """
        failure_mode = os.getenv("UPLOAD_LOG_FAILURE_MODE", FAIL_OPEN).strip().lower()
        if failure_mode not in (FAIL_OPEN, FAIL_CLOSED):
            raise ValueError(
                f"UPLOAD_LOG_FAILURE_MODE must be '{FAIL_OPEN}' or '{FAIL_CLOSED}', got '{failure_mode}'"
            )

        cors_from_env = os.getenv("CORS_ORIGINS", "").strip()
        cors_origins = [o.strip() for o in cors_from_env.split(",") if o.strip()] or [
            "http://localhost:3000",
        ]

        uploads_dir = os.getenv("UPLOADS_DIR")

        return cls(
            llm=LLMConfig(
                api_key=os.getenv("OPENROUTER_API_KEY") or None,
                model_name=os.getenv("OPENROUTER_MODEL_NAME", "mistralai/mistral-7b-instruct:free"),
                endpoint=os.getenv("OPENROUTER_ENDPOINT", "https://openrouter.ai/api/v1").rstrip("/"),
                site_url=os.getenv("SITE_URL", "http://localhost:3000"),
                app_name=os.getenv("APP_NAME", "AI Resume Analyzer"),
                timeout_seconds=float(os.getenv("ANALYSIS_TIMEOUT_SECONDS", "120")),
            ),
            supabase=SupabaseConfig(
                url=os.getenv("SUPABASE_URL") or None,
                service_key=os.getenv("SUPABASE_SERVICE_KEY") or None,
                upload_log_table=os.getenv("UPLOAD_LOG_TABLE", "upload_logs"),
                contact_table=os.getenv("CONTACT_TABLE", "contact_submissions"),
                upload_log_failure_mode=failure_mode,
            ),
            upload=UploadConfig(
                uploads_dir=Path(uploads_dir) if uploads_dir else _project_root / "uploads",
                max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024))),
                min_extracted_chars=int(os.getenv("MIN_EXTRACTED_CHARS", "50")),
            ),
            truncation=TruncationConfig(
                max_total_chars=int(os.getenv("MAX_TOTAL_CHARS", "24000")),
                max_resume_chars=int(os.getenv("MAX_RESUME_CHARS", "20000")),
                max_job_description_chars=int(os.getenv("MAX_JOB_DESCRIPTION_CHARS", "6000")),
            ),
            server=ServerConfig(
                host=os.getenv("HOST", "0.0.0.0"),
                port=int(os.getenv("PORT", "3001")),
                contact_port=int(os.getenv("CONTACT_PORT", "3000")),
                cors_origins=cors_origins,
            ),
            environment=os.getenv("APP_ENV", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def get_settings() -> Settings:
    """Build settings from the current process environment."""
    return Settings.from_env()
