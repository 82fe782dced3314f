"""Exception taxonomy shared by the pipeline, router, stages, and collaborators.

Error classes:
    - Configuration errors are raised synchronously during setup (route
      registration) and are never turned into request failures.
    - Validation errors halt a request before any storage or LLM call.
    - Collaborator errors (memory store, completion service) carry the failing
      operation in their message.
    - Routing and handler errors keep the route name so operators can tell a
      wrong classification from a broken handler.

User-visible behavior:
    None of these messages are sent to end users. Boundary adapters reply with
    `GENERIC_FAILURE_MESSAGE`; the detail only goes to the logs.
"""

GENERIC_FAILURE_MESSAGE = "Sorry, something went wrong while handling your message."


class ConduitError(Exception):
    """Base class for every error raised by this package."""


# =========================================================
# CONFIGURATION
# =========================================================

class ConfigurationError(ConduitError):
    """Invalid setup detected before any request is processed."""


class DuplicateRouteError(ConfigurationError):
    def __init__(self, name: str):
        super().__init__(f"Route with name '{name}' already exists")
        self.name = name


class RegistrySealedError(ConfigurationError):
    def __init__(self, name: str):
        super().__init__(
            f"Cannot register route '{name}': routes are sealed once request processing starts"
        )
        self.name = name


# =========================================================
# REQUEST VALIDATION
# =========================================================

class InputValidationError(ConduitError):
    """Malformed inbound message. Never retried."""


class MissingFieldError(InputValidationError):
    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = list(fields or [])


# =========================================================
# PIPELINE
# =========================================================

class StageError(ConduitError):
    """Wraps an exception escaping a pipeline stage with the stage name."""

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"Stage '{stage}' failed: {cause}")
        self.stage = stage
        self.cause = cause


class ResponseFinalizedError(ConduitError):
    """A second terminal write was attempted on the same response."""


# =========================================================
# COLLABORATORS
# =========================================================

class MemoryStoreError(ConduitError):
    """Memory store read/write failure."""


class CompletionError(ConduitError):
    """Completion-service call failed (transport, provider, or response shape)."""


class StructuredOutputError(CompletionError):
    """Model output could not be parsed into the requested schema."""


# =========================================================
# ROUTING
# =========================================================

class RoutingError(ConduitError):
    """Classification could not produce a usable decision."""


class UnmatchedRouteError(RoutingError):
    def __init__(self, route_name: str, available: list[str] | None = None):
        message = f"No handler found for route: {route_name}"
        if available:
            message += f" (registered: {', '.join(available)})"
        super().__init__(message)
        self.route_name = route_name
        self.available = list(available or [])


class RouteHandlerError(ConduitError):
    def __init__(self, route_name: str, cause: BaseException):
        super().__init__(f"Route handler error ({route_name}): {cause}")
        self.route_name = route_name
        self.cause = cause
