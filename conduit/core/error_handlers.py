"""Stock error handlers registered with `AgentFramework.on_error`.

Handlers observe every request failure in registration order:
    - `log_error` writes the diagnostic detail (identifiers, failing stage or
      route, traceback) to the log.
    - `reply_with_apology` builds a handler that delivers a user-facing
      message. Raw error text is never included.
"""

import logging

from conduit.core.errors import (
    GENERIC_FAILURE_MESSAGE,
    InputValidationError,
    RouteHandlerError,
    StageError,
)


logger = logging.getLogger(__name__)


def _root_cause(error: BaseException) -> BaseException:
    while isinstance(error, StageError):
        error = error.cause
    return error


async def log_error(error, request, response) -> None:
    stage = error.stage if isinstance(error, StageError) else None
    cause = _root_cause(error)
    route = cause.route_name if isinstance(cause, RouteHandlerError) else None
    logger.error(
        "Request failed (source=%s user=%s agent=%s room=%s stage=%s route=%s): %s",
        request.input.source.value if request.input.source else None,
        request.input.user_id,
        request.input.agent_id,
        request.input.room_id,
        stage,
        route,
        error,
        exc_info=(type(cause), cause, cause.__traceback__),
    )


def reply_with_apology(
    message: str = GENERIC_FAILURE_MESSAGE,
    validation_message: str | None = "Sorry, I couldn't understand that message.",
):
    """Build an error handler that sends a generic acknowledgment to the user.

    Args:
        message: Text sent for any failure.
        validation_message: Text sent when the input itself was malformed;
            `None` falls back to `message`.
    """

    async def reply(error, request, response) -> None:
        if validation_message and isinstance(_root_cause(error), InputValidationError):
            await response.reply_error(validation_message)
            return
        await response.reply_error(message)

    reply.__name__ = "reply_with_apology"
    return reply
