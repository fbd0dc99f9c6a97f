"""Service-layer exceptions translated to HTTP statuses by the routers."""


class ServiceError(RuntimeError):
    """Base class for expected service failures."""


class InvalidRequestError(ServiceError):
    """The request is missing data the operation needs."""


class AccessDeniedError(ServiceError):
    """The caller is not a member of the owning workspace."""


class ResourceNotFoundError(ServiceError):
    """A referenced proposal, suggestion or squad does not exist."""


class StateConflictError(ServiceError):
    """The target is not in a state that allows the operation."""


class PromptNotConfiguredError(ServiceError):
    """No active prompt version is registered for the requested prompt."""


class ProposalGenerationError(ServiceError):
    """The model call failed or did not return a usable proposal."""
