from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database settings
    ARANGO_URL: str = "http://localhost:8529"
    ARANGO_USERNAME: str = "root"
    ARANGO_PASSWORD: str = "openSesame"
    ARANGO_DATABASE: str = "aily"

    # CORS settings
    FRONTEND_URL: str = "http://localhost:5173"

    # AI student settings
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.0-flash"
    LLM_TEMPERATURE: float = 0.8
    LLM_MAX_OUTPUT_TOKENS: int = 200
    LLM_TOP_P: float = 0.9
    LLM_TOP_K: int = 40
    LLM_TIMEOUT_SECONDS: float = 20.0
    LLM_MAX_ATTEMPTS: int = 3
    HISTORY_WINDOW: int = 12  # 6 exchanges

    # Teaching message rate limit (per student)
    MESSAGE_RATE_LIMIT: int = 30
    MESSAGE_RATE_WINDOW_SECONDS: int = 60

    # Optimistic concurrency retries for knowledge rows
    KNOWLEDGE_WRITE_ATTEMPTS: int = 5

    # Deployment settings
    PORT: int = 8000
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() in ["production", "prod"]

    @property
    def allowed_origins(self) -> list:
        """Get list of allowed CORS origins."""
        if self.is_production:
            return [self.FRONTEND_URL]
        return [
            self.FRONTEND_URL,
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000"
        ]

settings = Settings()
