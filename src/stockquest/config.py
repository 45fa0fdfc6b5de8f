"""Configuration management"""
import os
from dotenv import load_dotenv

from stockquest.exceptions import ConfigurationError

load_dotenv()

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Level curve: level 1 needs LEVEL_BASE_XP, every next level needs
# floor(previous * LEVEL_GROWTH_FACTOR)
LEVEL_BASE_XP: int = int(os.getenv("LEVEL_BASE_XP", "100"))
LEVEL_GROWTH_FACTOR: float = float(os.getenv("LEVEL_GROWTH_FACTOR", "1.5"))

# Daily challenges
DAILY_CHALLENGE_COUNT: int = int(os.getenv("DAILY_CHALLENGE_COUNT", "3"))

# Leaderboard
LEADERBOARD_PAGE_SIZE: int = int(os.getenv("LEADERBOARD_PAGE_SIZE", "10"))
LEADERBOARD_MAX_PAGE_SIZE: int = int(os.getenv("LEADERBOARD_MAX_PAGE_SIZE", "100"))

# Monitoring
ENABLE_PROMETHEUS: bool = os.getenv("ENABLE_PROMETHEUS", "true").lower() == "true"


# Validation
def validate_config() -> None:
    """Validate gamification configuration"""
    if LEVEL_BASE_XP < 1:
        raise ConfigurationError("LEVEL_BASE_XP must be at least 1", config_key="LEVEL_BASE_XP")
    if LEVEL_GROWTH_FACTOR < 1:
        raise ConfigurationError("LEVEL_GROWTH_FACTOR must be at least 1.0", config_key="LEVEL_GROWTH_FACTOR")
    if DAILY_CHALLENGE_COUNT < 1:
        raise ConfigurationError("DAILY_CHALLENGE_COUNT must be at least 1", config_key="DAILY_CHALLENGE_COUNT")
    if not 1 <= LEADERBOARD_PAGE_SIZE <= LEADERBOARD_MAX_PAGE_SIZE:
        raise ConfigurationError(
            "LEADERBOARD_PAGE_SIZE must be between 1 and LEADERBOARD_MAX_PAGE_SIZE",
            config_key="LEADERBOARD_PAGE_SIZE"
        )
