"""
Configuration settings for the PPE Training Service.
"""
from typing import List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.
    """
    PROJECT_NAME: str = "PPE Training Service"
    PROJECT_DESCRIPTION: str = "Training data bookkeeping and confidence enhancement for PPE detection"
    API_VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # CORS settings
    CORS_ORIGINS: List[str] = ["*"]

    @field_validator("CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # Database settings (key-value table lives here)
    DATABASE_URL: str = "sqlite:///./ppe_training.db"

    # Base detector (OpenAI-style chat completion endpoint)
    DETECTOR_API_URL: str = "https://api.deepseek.com/v1/chat/completions"
    DETECTOR_API_KEY: Optional[str] = None
    DETECTOR_MODEL: str = "deepseek-chat"
    DETECTOR_TIMEOUT: float = 30.0

    # Camera / periodic detection
    CAMERA_SOURCE: Optional[str] = None  # device index ("0") or stream URL
    DETECTION_INTERVAL_SECONDS: float = 4.0

    # Simulated training
    TRAINING_STEP_DELAY_SECONDS: float = 1.5
    SIMULATION_SEED: Optional[int] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow"
    )


# Create settings instance
settings = Settings()
