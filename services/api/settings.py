# services/api/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field
from typing import List, Optional
from pathlib import Path

class Settings(BaseSettings):
    # Storage settings
    # Default to Supabase; override via .env (STORAGE_BACKEND=json) for local dev
    storage_backend: str = "supabase"
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_bucket: str = "documents"
    supabase_table: str = "documents"

    # Local JSON store (documents.json + files/)
    json_data_dir: str = "data"

    # Signed URLs handed out by the store are valid for this long (seconds)
    signed_url_expires_in: int = 3600

    # Timeout for fetching a single source PDF
    fetch_timeout_seconds: float = 30.0

    # CORS settings
    allowed_origins: str = "http://localhost:5173,http://localhost:3000,http://localhost:8000"

    # ---- Packet generation ----

    # Page size of the cover / table of contents pages (fpdf2 format name)
    packet_page_format: str = "A4"

    # strftime format for the date on the cover page
    packet_date_format: str = "%m/%d/%Y"

    # How many source PDFs one build may download at the same time.
    # Pages are still merged strictly in the requested order.
    packet_fetch_concurrency: int = 4

    # Max number of packet builds running in parallel per application instance.
    # 1 = strictly serialize them (safest for memory).
    max_parallel_packets: int = 1

    # ---- Upload limits ----
    max_upload_bytes: int = Field(
        default=50 * 1024 * 1024,
        description="Largest PDF accepted by POST /documents",
    )
    min_upload_bytes: int = Field(
        default=1024,
        description="Anything smaller cannot be a real PDF",
    )

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(Path(__file__).resolve().parent / ".env"),
        extra="ignore",
    )

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


_settings_instance: Optional[Settings] = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
