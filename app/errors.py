"""
Error catalog and the handlers that render it as {errorCode, errorMessage}.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import NamedTuple

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

log = logging.getLogger("app.errors")


class ErrorCode(NamedTuple):
    code: str
    message: str


# --- signup ---
SIGNUP_SERVER_ERROR = ErrorCode("SIGNUP_SERVER_ERROR", "Signup process failed due to a server error.")
DUPLICATE_EMAIL = ErrorCode("DUPLICATE_EMAIL", "Email already exists.")
EMAIL_FAILURE = ErrorCode("EMAIL_FAILURE", "Sending code to email failed")
EMAIL_TRANSPORTER_FAILURE = ErrorCode(
    "EMAIL_TRANSPORTER_FAILURE", "Failed to initialize email transporter service. Please try again!"
)

# --- login / verification ---
LOGIN_SERVER_ERROR = ErrorCode("LOGIN_SERVER_ERROR", "Login process failed due to a server error.")
EMAIL_NOT_EXIST = ErrorCode("EMAIL_NOT_EXIST", "Wrong email and/or password provided!")
PASSWORD_NOT_MATCH = ErrorCode("PASSWORD_NOT_MATCH", "Wrong email and/or password provided!")
LOGOUT_ERROR = ErrorCode("LOGOUT_ERROR", "Unexpected error occured - failed to log out.")
EMAIL_VERIFY_FAILURE = ErrorCode("EMAIL_VERIFY_FAILURE", "Verification code is invalid/missing/expired")
EMAIL_NOT_VERIFIED = ErrorCode("EMAIL_NOT_VERIFIED", "Email is not verified yet! Try again after verification.")

# --- user ---
FETCH_ALL_USERS = ErrorCode("FETCH_ALL_USERS", "Failed to fetch all users.")
RESET_EMAIL_NOT_EXIST = ErrorCode("EMAIL_NOT_EXIST", "Email does not exist in the system")
FETCH_USER_BY_ID = ErrorCode("USER_NOT_EXIST", "User with the specified userid does not exist!")
AUTH_REQUIRED = ErrorCode("AUTH_REQUIRED", "Authentication required to access this route")
TOKEN_EXPIRED = ErrorCode("TOKEN_EXPIRED", "Authentication failed: 'access_token' cookie missing or expired")
PASSWORD_RESET_NOT_REQUESTED = ErrorCode("PASSWORD_RESET_NOT_REQUESTED", "Password Change is not verified")
UPDATE_SERVER_ERROR = ErrorCode("UPDATE_SERVER_ERROR", "Update process failed due to server error")
NO_UPDATE_FIELDS = ErrorCode("NO_UPDATE_FIELDS", "No fields provided to update")
CURRENT_PASSWORD_INCORRECT = ErrorCode("CURRENT_PASSWORD_INCORRECT", "Current password is incorrect")
FORBIDDEN = ErrorCode("FORBIDDEN", "Not allowed to modify another user's data")
ROLE_CHANGE_FORBIDDEN = ErrorCode("FORBIDDEN", "Only admins may change roles")

# --- availability ---
AVAILABILITY_SERVER_ERROR = ErrorCode("AVAILABILITY_SERVER_ERROR", "Availability update failed due to a server error.")

# --- request level ---
VALIDATION_ERROR = ErrorCode("VALIDATION_ERROR", "Request body is missing or malformed")
RATE_LIMITED = ErrorCode("RATE_LIMITED", "Too many requests. Please try again later.")
SERVER_ERROR = ErrorCode("SERVER_ERROR", "Unexpected server error.")


class AccountError(Exception):
    """An expected failure with a fixed HTTP status and catalog entry."""

    def __init__(self, status_code: int, error: ErrorCode):
        super().__init__(error.message)
        self.status_code = status_code
        self.error = error


def request_id_of(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


def error_body(error: ErrorCode) -> dict:
    return {"errorCode": error.code, "errorMessage": error.message}


def error_response(status_code: int, error: ErrorCode) -> JSONResponse:
    return JSONResponse(error_body(error), status_code=status_code)


@contextmanager
def handler_errors(request_id: str, server_error: ErrorCode):
    """
    Let AccountError through; turn anything else into a 500 carrying the
    handler's own server error code.
    """
    try:
        yield
    except AccountError:
        raise
    except Exception as exc:
        log.exception("[%s] unhandled error: %s", request_id, exc)
        raise AccountError(500, server_error) from exc


async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    log.warning(
        "[%s] %s %s -> %s %s",
        request_id_of(request),
        request.method,
        request.url.path,
        exc.status_code,
        exc.error.code,
    )
    return error_response(exc.status_code, exc.error)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    log.warning("[%s] invalid request body: %s", request_id_of(request), exc.errors())
    return error_response(400, VALIDATION_ERROR)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error("[%s] unhandled error on %s %s", request_id_of(request), request.method, request.url.path, exc_info=exc)
    return error_response(500, SERVER_ERROR)


def register_error_handlers(app) -> None:
    app.add_exception_handler(AccountError, account_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
