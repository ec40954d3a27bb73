from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Manages all application settings. It automatically reads from
    environment variables or a .env file.
    """
    # Tell pydantic to load variables from a .env file
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    LOG_LEVEL: str = "INFO"

    # A practice session is never longer than this
    MAX_SESSION_MINUTES: int = 15

    # Number of completed segments that finish each training stage
    STAGE_2_SEGMENTS: int = 12
    STAGE_3_SEGMENTS: int = 48

    # Set to make shuffles and randomized pacing reproducible
    RANDOM_SEED: Optional[int] = None

    CORS_ORIGINS: List[str] = ["*"]

    @property
    def max_session_ms(self) -> int:
        return self.MAX_SESSION_MINUTES * 60 * 1000

    @property
    def stage_segment_totals(self) -> dict:
        return {2: self.STAGE_2_SEGMENTS, 3: self.STAGE_3_SEGMENTS}

# Create a single, reusable instance of the settings
settings = Settings()
