"""
Signup, login/logout and email verification routes.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Response

from app import messages
from app.auth_utils import clear_auth_cookie, get_current_user, set_auth_cookie
from app.config import Settings
from app.deps import auth_rate_limit, get_mailer, get_request_id, get_settings, get_store, get_tokens
from app.email_utils import VERIFY_EMAIL, MailSender, deliver
from app.errors import (
    DUPLICATE_EMAIL,
    EMAIL_NOT_EXIST,
    EMAIL_NOT_VERIFIED,
    EMAIL_VERIFY_FAILURE,
    FETCH_ALL_USERS,
    FETCH_USER_BY_ID,
    LOGIN_SERVER_ERROR,
    LOGOUT_ERROR,
    PASSWORD_NOT_MATCH,
    SIGNUP_SERVER_ERROR,
    AccountError,
    handler_errors,
)
from app.schemas import (
    EmailVerifyBody,
    EmailVerifyResetBody,
    LoginBody,
    LoginOut,
    MessageOut,
    SignupBody,
    SignupOut,
    UserOut,
)
from app.tokens import TokenCodec
from core.database import AccountStore
from core.db.errors import DuplicateEmailError
from core.db.users import verify_password

log = logging.getLogger("app.routes.auth")

router = APIRouter()


@router.post("/signup", status_code=201, response_model=SignupOut, dependencies=[Depends(auth_rate_limit)])
def signup(
    body: SignupBody,
    request_id: str = Depends(get_request_id),
    settings: Settings = Depends(get_settings),
    store: AccountStore = Depends(get_store),
    mailer: Optional[MailSender] = Depends(get_mailer),
):
    log.info("[%s] signup email=%s", request_id, body.email)
    with handler_errors(request_id, SIGNUP_SERVER_ERROR):
        if store.exists_by_email(body.email):
            raise AccountError(409, DUPLICATE_EMAIL)
        try:
            user, code = store.create_user(body.name, body.email, body.password)
        except DuplicateEmailError:
            # lost the race against a concurrent signup
            raise AccountError(409, DUPLICATE_EMAIL)
        log.info("[%s] user %s created", request_id, user["userid"])

        deliver(settings, mailer, request_id, user["email"], VERIFY_EMAIL, {"name": user["name"], "code": code})

    return {
        "userid": user["userid"],
        "name": user["name"],
        "email": user["email"],
        "role": list(user["role"]),
    }


@router.get("/users", response_model=List[UserOut])
def list_users(
    request_id: str = Depends(get_request_id),
    store: AccountStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    log.info("[%s] list users requested by %s", request_id, current_user["userid"])
    with handler_errors(request_id, FETCH_ALL_USERS):
        return store.list_users()


@router.post("/login", response_model=LoginOut, dependencies=[Depends(auth_rate_limit)])
def login(
    body: LoginBody,
    response: Response,
    request_id: str = Depends(get_request_id),
    settings: Settings = Depends(get_settings),
    store: AccountStore = Depends(get_store),
    tokens: TokenCodec = Depends(get_tokens),
):
    log.info("[%s] login email=%s", request_id, body.email)
    with handler_errors(request_id, LOGIN_SERVER_ERROR):
        user = store.get_user_by_email(body.email)
        if not user:
            raise AccountError(401, EMAIL_NOT_EXIST)
        if not verify_password(body.password, user["passwordhash"]):
            raise AccountError(401, PASSWORD_NOT_MATCH)
        if not store.is_email_verified(user["userid"]):
            raise AccountError(401, EMAIL_NOT_VERIFIED)

        access_token = tokens.issue(user)

    set_auth_cookie(response, access_token, settings)
    return {"accessToken": access_token}


@router.post("/logout", response_model=MessageOut)
def logout(
    response: Response,
    request_id: str = Depends(get_request_id),
    settings: Settings = Depends(get_settings),
    store: AccountStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    log.info("[%s] logout userid=%s", request_id, current_user["userid"])
    with handler_errors(request_id, LOGOUT_ERROR):
        store.set_last_logout(current_user["userid"])

    clear_auth_cookie(response, settings)
    return messages.message(messages.LOGOUT_SUCCESS)


@router.post("/verifyEmail", response_model=MessageOut)
def verify_email(
    body: EmailVerifyBody,
    request_id: str = Depends(get_request_id),
    store: AccountStore = Depends(get_store),
):
    log.info("[%s] verify email userid=%s", request_id, body.userid)
    with handler_errors(request_id, SIGNUP_SERVER_ERROR):
        if not store.check_email_token(body.userid, body.verificationCode):
            raise AccountError(401, EMAIL_VERIFY_FAILURE)
        store.mark_email_verified(body.userid)

    return messages.message(messages.EMAIL_VERIFY_SUCCESS)


@router.post("/verifyEmailReset", response_model=MessageOut, dependencies=[Depends(auth_rate_limit)])
def verify_email_reset(
    body: EmailVerifyResetBody,
    request_id: str = Depends(get_request_id),
    settings: Settings = Depends(get_settings),
    store: AccountStore = Depends(get_store),
    mailer: Optional[MailSender] = Depends(get_mailer),
):
    log.info("[%s] resend verification code userid=%s", request_id, body.userid)
    with handler_errors(request_id, SIGNUP_SERVER_ERROR):
        user = store.get_user_by_id(body.userid)
        code = store.regenerate_email_token(body.userid) if user else None
        if code is None:
            raise AccountError(400, FETCH_USER_BY_ID)

        deliver(settings, mailer, request_id, user["email"], VERIFY_EMAIL, {"name": user["name"], "code": code})

    return messages.message(messages.EMAIL_VERIFY_CODE_RESET)
