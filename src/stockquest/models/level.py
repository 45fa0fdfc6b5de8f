"""Level and rank models"""
from pydantic import BaseModel, ConfigDict


class LevelInfo(BaseModel):
    """Where a cumulative XP total sits on the level ladder"""
    model_config = ConfigDict(frozen=True)

    level: int
    title: str
    total_xp: int
    xp_into_level: int
    xp_required: int  # XP needed to clear the current level
    xp_to_next_level: int

    @property
    def progress_percentage(self) -> int:
        return int(self.xp_into_level / self.xp_required * 100)


class UserRank(BaseModel):
    """Rank badge earned from level, XP and achievement count"""
    model_config = ConfigDict(frozen=True)

    name: str
    icon: str
    min_level: int
    min_xp: int
    achievements_required: int
