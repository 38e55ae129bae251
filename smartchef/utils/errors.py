"""Failure taxonomy shared by the gateway, store, orchestrator and chat.

Every public operation either returns a value or raises one of these.
Each failure carries a short user-facing ``message``.
"""

from typing import Any, Callable, Optional

from smartchef.utils.logger import logger


class SmartChefError(Exception):
    """Base class for all failures surfaced to callers."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailure(SmartChefError):
    """Malformed caller input, detected before any network call."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Invalid {field}: {message}")
        self.field = field


class AuthFailure(SmartChefError):
    """No resolved identity for an operation that requires one."""

    def __init__(self, message: str = "You must be logged in to do that.") -> None:
        super().__init__(message)


class GenerationFailure(SmartChefError):
    """Hosted model call failed, timed out, was blocked or returned non-conforming output."""

    def __init__(self, capability: str, message: str) -> None:
        super().__init__(f"{capability} failed: {message}")
        self.capability = capability


class PersistenceFailure(SmartChefError):
    """Remote store call failed. In-memory state is unchanged."""


class RecipeNotFound(PersistenceFailure):
    """Mutation targeted an id that is unknown or not owned by the caller."""

    def __init__(self, recipe_id: str) -> None:
        super().__init__(f"Recipe '{recipe_id}' not found.")
        self.recipe_id = recipe_id


class OrchestrationFailure(SmartChefError):
    """A generation run ended in the failed state.

    ``draft`` holds the generated text when persistence (not generation) failed,
    so callers can still show it even though nothing durable exists.
    """

    def __init__(self, stage: str, cause: SmartChefError, draft: Optional[Any] = None) -> None:
        super().__init__(cause.message)
        self.stage = stage
        self.cause = cause
        self.draft = draft


class ChatBusy(SmartChefError):
    """A question was submitted while another one is still being answered."""

    def __init__(self) -> None:
        super().__init__("Please wait for the current answer before asking another question.")


def _log_error(operation_name: str, exception: Exception, log_level: str = "warning") -> None:
    """Log error with appropriate level."""
    msg = f"{operation_name}: {exception}"
    if log_level == "debug":
        logger.debug(msg)
    elif log_level == "error":
        logger.error(msg)
    else:
        logger.warning(msg)


def safe_execute_sync(
    func: Callable[[], Any],
    operation_name: str,
    log_level: str = "warning",
    default_return: Any = None,
) -> Any:
    """Run an optional, degradable step and log instead of raising.

    Used where failure has a sensible fallback: image compression falls back to
    the original bytes, lenient JSON parsing falls back to the next strategy.

    Args:
        func: Callable to execute (no args).
        operation_name: Description for logging.
        log_level: Logging level ("debug", "warning", "error"). Default: "warning".
        default_return: Value returned when ``func`` raises.

    Returns:
        Result of func, or default_return on exception.
    """
    try:
        return func()
    except Exception as e:
        _log_error(operation_name, e, log_level)
        return default_return
