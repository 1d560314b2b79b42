"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
    
    # Environment
    ENV: str = "dev"
    
    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"
    
    # Database
    DATABASE_URL: str
    
    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""
    
    # Rate Limiting (requests per minute)
    RATE_LIMIT_API: int = 60  # General API
    RATE_LIMIT_UPLOAD: int = 10  # Spreadsheet uploads
    
    # Spreadsheet uploads
    MAX_UPLOAD_FILES: int = 20
    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024  # 10 MB per file
    
    # Re-resolve + retry budget when the batched catalog write conflicts or times out
    CATALOG_WRITE_RETRIES: int = 1
    
    # Hosts a tracked form URL may point at (comma-separated)
    ALLOWED_FORM_HOSTS: str = "forms.office.com,forms.cloud.microsoft"
    
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
    
    @property
    def allowed_form_hosts_list(self) -> list[str]:
        """Parse ALLOWED_FORM_HOSTS into lowercase list."""
        if not self.ALLOWED_FORM_HOSTS:
            return []
        return [h.strip().lower() for h in self.ALLOWED_FORM_HOSTS.split(",") if h.strip()]


settings = Settings()
