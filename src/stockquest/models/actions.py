"""
Action models: what a user did, and the payload that came with it

Every action kind has a payload model; payloads are validated before any
counter is touched.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActionKind(str, Enum):
    """User actions the engine knows how to score"""
    LESSON_COMPLETED = "lesson_completed"
    MODULE_COMPLETED = "module_completed"
    QUIZ_PASSED = "quiz_passed"
    TRADE_EXECUTED = "trade_executed"
    STRATEGY_CREATED = "strategy_created"
    COMMUNITY_HELP = "community_help"
    DAILY_LOGIN = "daily_login"


class ActionPayload(BaseModel):
    """Base payload; unknown keys are ignored"""
    model_config = ConfigDict(extra="ignore", frozen=True)


class LessonCompletedPayload(ActionPayload):
    lesson_id: Optional[str] = None


class ModuleCompletedPayload(ActionPayload):
    module_id: Optional[str] = None


class QuizPassedPayload(ActionPayload):
    """Quiz result; score is a percentage"""
    quiz_id: Optional[str] = None
    score: int = Field(ge=0, le=100)


class TradeExecutedPayload(ActionPayload):
    """Simulated trade fill"""
    symbol: str = Field(min_length=1, max_length=12)
    quantity: float = Field(gt=0)
    profit_pct: float = 0.0

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        symbol = v.strip().upper()
        if not symbol:
            raise ValueError("Symbol cannot be blank")
        return symbol


class StrategyCreatedPayload(ActionPayload):
    strategy_id: Optional[str] = None


class CommunityHelpPayload(ActionPayload):
    thread_id: Optional[str] = None


class DailyLoginPayload(ActionPayload):
    pass


PAYLOAD_MODELS = {
    ActionKind.LESSON_COMPLETED: LessonCompletedPayload,
    ActionKind.MODULE_COMPLETED: ModuleCompletedPayload,
    ActionKind.QUIZ_PASSED: QuizPassedPayload,
    ActionKind.TRADE_EXECUTED: TradeExecutedPayload,
    ActionKind.STRATEGY_CREATED: StrategyCreatedPayload,
    ActionKind.COMMUNITY_HELP: CommunityHelpPayload,
    ActionKind.DAILY_LOGIN: DailyLoginPayload,
}


class Action(BaseModel):
    """A parsed, validated user action"""
    model_config = ConfigDict(frozen=True)

    kind: ActionKind
    payload: ActionPayload
