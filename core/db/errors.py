"""
Exceptions raised by the account store.
"""


class StoreError(Exception):
    """Base class for account store failures the API maps to client errors."""


class DuplicateEmailError(StoreError):
    def __init__(self, email: str):
        super().__init__(f"email already registered: {email}")
        self.email = email


class UnknownEmailError(StoreError):
    def __init__(self, email: str):
        super().__init__(f"no account for email: {email}")
        self.email = email


class NoUpdateFieldsError(StoreError):
    pass


__all__ = ["StoreError", "DuplicateEmailError", "UnknownEmailError", "NoUpdateFieldsError"]
