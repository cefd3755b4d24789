from __future__ import annotations


class AuthFlowError(RuntimeError):
    """A terminal failure of one login, callback or logout request.

    The message is for the server log only; clients get a generic page.
    """

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class RandomnessError(AuthFlowError):
    pass


class SessionPersistError(AuthFlowError):
    pass


class StateMismatchError(AuthFlowError):
    pass


class MissingCodeError(AuthFlowError):
    pass


class TokenExchangeError(AuthFlowError):
    status_code = 401


class MissingIDTokenError(AuthFlowError):
    status_code = 401


class TokenVerificationError(AuthFlowError):
    status_code = 401


class ClaimsDecodeError(AuthFlowError):
    status_code = 401


class URLConstructionError(AuthFlowError):
    pass


class DiscoveryError(RuntimeError):
    pass
