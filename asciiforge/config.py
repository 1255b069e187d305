"""Engine configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings."""

    # History
    MAX_HISTORY_SIZE: int = 100

    # New document defaults
    DEFAULT_CANVAS_WIDTH: int = 80
    DEFAULT_CANVAS_HEIGHT: int = 24
    DEFAULT_FRAME_DURATION: int = 100  # Milliseconds
    DEFAULT_FRAME_RATE: int = 12
    DEFAULT_TIMELINE_DURATION: int = 12  # Frames

    # Persistence
    PROJECT_FILE_EXTENSION: str = ".asciimtn"

    model_config = {"env_prefix": "ASCIIFORGE_"}


settings = Settings()
