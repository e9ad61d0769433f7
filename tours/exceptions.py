"""Domain exceptions for the tour engine."""


class TourServiceError(Exception):
    """Base exception for all tour service errors."""
    status_code = 400


# Not found

class NotFoundError(TourServiceError):
    status_code = 404


class TourNotFoundError(NotFoundError):
    """Tour id was never allocated."""
    pass


# Authorization

class AuthorizationError(TourServiceError):
    status_code = 403


class NotOwnerError(AuthorizationError):
    """Caller does not own the tour."""
    pass


class NotAdministratorError(AuthorizationError):
    """Caller is not an administrator."""
    pass


class SelfVoteForbiddenError(AuthorizationError):
    """Owners cannot vote on their own tour."""
    pass


class SelfCheckInForbiddenError(AuthorizationError):
    """Owners cannot check in to their own tour."""
    pass


# Policy violations

class PolicyViolationError(TourServiceError):
    status_code = 400


class InvalidParametersError(PolicyViolationError):
    """Empty image reference or location, or an out-of-range value."""
    pass


class TourAlreadyVerifiedError(PolicyViolationError):
    """Verified tours are frozen."""
    pass


class TourInactiveError(PolicyViolationError):
    pass


class TourNotVerifiedError(PolicyViolationError):
    pass


class AlreadyVotedError(PolicyViolationError):
    status_code = 409


class AlreadyCheckedInError(PolicyViolationError):
    status_code = 409


class InsufficientStakeError(PolicyViolationError):
    """Voter stake is below the configured minimum."""
    pass


class LocationMismatchError(PolicyViolationError):
    """Claimed location differs from the stored one."""
    pass


class ConcurrentModificationError(PolicyViolationError):
    """Tour is already being mutated by the calling thread."""
    status_code = 409


# Resource exhaustion

class ResourceExhaustedError(TourServiceError):
    status_code = 422


class BalanceOverflowError(ResourceExhaustedError):
    pass


# Gate

class OperationsPausedError(TourServiceError):
    """Mutating operations are disabled by an administrator."""
    status_code = 503
