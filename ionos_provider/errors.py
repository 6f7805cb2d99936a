from enum import Enum


class ErrorCode(str, Enum):
    INVALID_ARGUMENT = "InvalidArgument"
    NOT_FOUND = "NotFound"
    INTERNAL = "Internal"
    UNAVAILABLE = "Unavailable"
    ABORTED = "Aborted"
    CANCELED = "Canceled"
    UNIMPLEMENTED = "Unimplemented"


class DriverError(RuntimeError):
    """Classified failure of a driver operation, as reported to the orchestrating host."""

    def __init__(self, code: ErrorCode, message: str = ""):
        self.code = code
        self.message = message
        super().__init__(f"{code.value}: {message}" if message else code.value)


class IdentityError(ValueError):
    pass


class MalformedIdentity(IdentityError):
    pass


class UnsupportedScheme(IdentityError):
    pass


class IncompleteIdentity(IdentityError):
    pass


class InvalidComponent(IdentityError):
    pass


class InvalidProviderSpec(ValueError):
    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            "error while validating provider spec: " + "; ".join(self.errors)
        )


class UnsupportedImage(ValueError):
    pass


class PollingExhausted(RuntimeError):
    def __init__(self, kind: str, attempts: int):
        self.kind = kind
        self.attempts = attempts
        super().__init__(
            f"maximum number of retries ({attempts}) exceeded waiting for {kind} modifications"
        )


class PoolExhausted(RuntimeError):
    def __init__(self, pool_id: str):
        self.pool_id = pool_id
        super().__init__(f"floating pool IP block '{pool_id}' given is exhausted")


class WaitCanceled(RuntimeError):
    pass
