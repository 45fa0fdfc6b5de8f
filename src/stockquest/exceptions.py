"""
Standardized exception hierarchy for stockquest
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class StockQuestError(Exception):
    """
    Base exception for all stockquest errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise StockQuestError(
            message="Failed to award XP",
            user_id="u1",
            operation="record_action",
            context={"action": "quiz_passed"}
        )
    """

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "Something went wrong. Nothing was changed."
        self.timestamp = datetime.now(timezone.utc)

        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.warning(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.warning(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for presentation code"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Caller Errors
# ==========================================

class InvalidArgumentError(StockQuestError):
    """
    Raised when a caller hands the engine something it cannot accept

    Examples:
    - Negative XP or points delta
    - Malformed action payload
    - Unknown leaderboard scope

    Example:
        raise InvalidArgumentError(
            message="XP delta cannot be negative",
            field="xp",
            value=-5,
            user_id="u1"
        )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


class NotFoundError(StockQuestError):
    """Referenced achievement or challenge does not exist"""

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


# ==========================================
# Challenge Claim Errors
# ==========================================

class ChallengeClaimError(StockQuestError):
    """
    Base class for a claim on a challenge that is not eligible
    """

    reason: str = "ineligible"

    def __init__(
        self,
        message: str,
        challenge_id: Optional[str] = None,
        user_message: Optional[str] = None,
        **kwargs
    ):
        self.challenge_id = challenge_id
        super().__init__(
            message=message,
            user_message=user_message or "This challenge reward cannot be claimed.",
            context={"challenge_id": challenge_id, "reason": self.reason},
            **kwargs
        )


class AlreadyClaimedError(ChallengeClaimError):
    """Challenge reward was already paid out"""

    reason = "already_claimed"

    def __init__(self, message: str = "Challenge already claimed", **kwargs):
        super().__init__(
            message=message,
            user_message="You already claimed this reward.",
            **kwargs
        )


class NotCompletedError(ChallengeClaimError):
    """Challenge has not reached its target yet"""

    reason = "not_completed"

    def __init__(self, message: str = "Challenge not completed", **kwargs):
        super().__init__(
            message=message,
            user_message="Finish the challenge before claiming the reward.",
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(StockQuestError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_validation_error(
    error: PydanticValidationError,
    operation: str,
    user_id: Optional[str] = None,
) -> InvalidArgumentError:
    """
    Wrap a pydantic ValidationError into our exception hierarchy

    Args:
        error: Original pydantic error
        operation: What operation was being performed
        user_id: User ID if applicable

    Returns:
        InvalidArgumentError naming the first offending field

    Example:
        try:
            payload = QuizPassedPayload.model_validate(raw)
        except ValidationError as e:
            raise wrap_validation_error(e, "record_action", user_id)
    """
    errors = error.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = first.get("msg", str(error))

    return InvalidArgumentError(
        message=message,
        field=field,
        value=first.get("input"),
        operation=operation,
        user_id=user_id,
        cause=error,
    )
