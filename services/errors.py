class DrugVerifyError(Exception):
    """Base class for errors raised inside the verification service."""


class LookupUnavailable(DrugVerifyError):
    """An external evidence source could not be reached or returned garbage."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source} unavailable: {reason}")


class ModelInvocationFailed(DrugVerifyError):
    """A model call raised, returned nothing, or returned output we could not parse."""

    def __init__(self, provider: str, reason: str, details: dict = None):
        self.provider = provider
        self.reason = reason
        self.details = details or {}
        super().__init__(f"{provider} failed: {reason}")


class PersistenceError(DrugVerifyError):
    pass


class UnknownUser(DrugVerifyError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User '{user_id}' does not exist")
