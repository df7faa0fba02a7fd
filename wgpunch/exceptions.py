class BaseWgPunchError(Exception):
    pass


class ValidationError(BaseWgPunchError):
    """Raised when something does not pass a validation check."""


class ParseError(BaseWgPunchError):
    pass
