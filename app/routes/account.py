"""
Profile, password and email changes for signed-in users, plus the
unauthenticated password reset flow.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response

from app import messages
from app.auth_utils import clear_auth_cookie, get_current_user, is_admin
from app.config import Settings
from app.deps import auth_rate_limit, get_mailer, get_request_id, get_settings, get_store
from app.email_utils import EMAIL_CHANGE, PASSWORD_RESET, MailSender, deliver
from app.errors import (
    CURRENT_PASSWORD_INCORRECT,
    DUPLICATE_EMAIL,
    EMAIL_VERIFY_FAILURE,
    FETCH_USER_BY_ID,
    NO_UPDATE_FIELDS,
    PASSWORD_RESET_NOT_REQUESTED,
    RESET_EMAIL_NOT_EXIST,
    ROLE_CHANGE_FORBIDDEN,
    UPDATE_SERVER_ERROR,
    AccountError,
    ErrorCode,
    handler_errors,
)
from app.schemas import (
    ChangePasswordBody,
    EmailUpdateInitBody,
    EmailUpdateVerifyBody,
    MessageOut,
    PasswordUpdateBody,
    ResetPasswordInitBody,
    ResetPasswordVerifyBody,
    UserBasicUpdateBody,
    UserOut,
)
from core.database import AccountStore
from core.db.errors import DuplicateEmailError, NoUpdateFieldsError, UnknownEmailError
from core.db.users import UserPatch

log = logging.getLogger("app.routes.account")

router = APIRouter()


def _unknown_reset_email(settings: Settings, masked: Optional[ErrorCode]):
    """
    Unknown email on a reset route. With reveal on, a 400 naming it; otherwise
    the same answer a known address with a bad code would get (None: success).
    """
    if settings.reset_reveals_unknown_email:
        raise AccountError(400, RESET_EMAIL_NOT_EXIST)
    if masked is not None:
        raise AccountError(401, masked)


@router.patch("/userBasicUpdate", response_model=UserOut)
def user_basic_update(
    body: UserBasicUpdateBody,
    request_id: str = Depends(get_request_id),
    store: AccountStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    userid = current_user["userid"]
    log.info("[%s] basic update userid=%s", request_id, userid)
    if body.role is not None and not is_admin(current_user):
        raise AccountError(403, ROLE_CHANGE_FORBIDDEN)
    with handler_errors(request_id, UPDATE_SERVER_ERROR):
        try:
            user = store.update_basic_fields(userid, UserPatch(name=body.name, role=body.role))
        except NoUpdateFieldsError:
            raise AccountError(400, NO_UPDATE_FIELDS)
        if user is None:
            raise AccountError(400, FETCH_USER_BY_ID)
    return user


@router.patch("/userPasswordUpdate", response_model=MessageOut)
def user_password_update(
    body: PasswordUpdateBody,
    response: Response,
    request_id: str = Depends(get_request_id),
    settings: Settings = Depends(get_settings),
    store: AccountStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    userid = current_user["userid"]
    log.info("[%s] password update userid=%s", request_id, userid)
    with handler_errors(request_id, UPDATE_SERVER_ERROR):
        if not store.change_password(userid, body.password, body.new_password):
            raise AccountError(400, CURRENT_PASSWORD_INCORRECT)

    # every session ended with the password change, this one included
    clear_auth_cookie(response, settings)
    return messages.message(messages.PASSWORD_UPDATE_SUCCESS)


@router.post("/userEmailUpdateInit", response_model=MessageOut)
def user_email_update_init(
    body: EmailUpdateInitBody,
    request_id: str = Depends(get_request_id),
    settings: Settings = Depends(get_settings),
    store: AccountStore = Depends(get_store),
    mailer: Optional[MailSender] = Depends(get_mailer),
    current_user: dict = Depends(get_current_user),
):
    userid = current_user["userid"]
    log.info("[%s] email change requested userid=%s", request_id, userid)
    with handler_errors(request_id, UPDATE_SERVER_ERROR):
        try:
            code = store.init_email_change(userid, body.new_email)
        except DuplicateEmailError:
            raise AccountError(409, DUPLICATE_EMAIL)

        deliver(
            settings,
            mailer,
            request_id,
            body.new_email,
            EMAIL_CHANGE,
            {"name": current_user.get("name") or "", "code": code},
        )

    return messages.message(messages.EMAIL_UPDATE_INIT_SUCCESS)


@router.patch("/userEmailUpdateVerify", response_model=MessageOut)
def user_email_update_verify(
    body: EmailUpdateVerifyBody,
    request_id: str = Depends(get_request_id),
    store: AccountStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    userid = current_user["userid"]
    log.info("[%s] email change verify userid=%s", request_id, userid)
    with handler_errors(request_id, UPDATE_SERVER_ERROR):
        try:
            new_email = store.verify_email_change(userid, body.verificationCode)
        except DuplicateEmailError:
            raise AccountError(409, DUPLICATE_EMAIL)
        if new_email is None:
            raise AccountError(401, EMAIL_VERIFY_FAILURE)

    log.info("[%s] userid=%s now uses %s", request_id, userid, new_email)
    return messages.message(messages.EMAIL_VERIFY_SUCCESS)


@router.post("/resetPasswordInit", response_model=MessageOut, dependencies=[Depends(auth_rate_limit)])
def reset_password_init(
    body: ResetPasswordInitBody,
    request_id: str = Depends(get_request_id),
    settings: Settings = Depends(get_settings),
    store: AccountStore = Depends(get_store),
    mailer: Optional[MailSender] = Depends(get_mailer),
):
    log.info("[%s] password reset requested email=%s", request_id, body.email)
    with handler_errors(request_id, UPDATE_SERVER_ERROR):
        try:
            user, code = store.init_password_reset(body.email)
        except UnknownEmailError:
            _unknown_reset_email(settings, None)
            log.info("[%s] password reset for unknown email masked", request_id)
            return messages.message(messages.PASSWORD_RESET_INIT)

        deliver(settings, mailer, request_id, user["email"], PASSWORD_RESET, {"name": user["name"], "code": code})

    return messages.message(messages.PASSWORD_RESET_INIT)


@router.patch("/resetPasswordVerify", response_model=MessageOut, dependencies=[Depends(auth_rate_limit)])
def reset_password_verify(
    body: ResetPasswordVerifyBody,
    request_id: str = Depends(get_request_id),
    settings: Settings = Depends(get_settings),
    store: AccountStore = Depends(get_store),
):
    log.info("[%s] password reset verify email=%s", request_id, body.email)
    with handler_errors(request_id, UPDATE_SERVER_ERROR):
        try:
            verified = store.verify_password_reset_code(body.email, body.verificationCode)
        except UnknownEmailError:
            _unknown_reset_email(settings, EMAIL_VERIFY_FAILURE)
            verified = False
        if not verified:
            raise AccountError(401, EMAIL_VERIFY_FAILURE)

    return messages.message(messages.PASSWORD_RESET_VERIFIED)


@router.patch("/changePassword", response_model=MessageOut, dependencies=[Depends(auth_rate_limit)])
def change_password(
    body: ChangePasswordBody,
    request_id: str = Depends(get_request_id),
    settings: Settings = Depends(get_settings),
    store: AccountStore = Depends(get_store),
):
    log.info("[%s] password reset apply email=%s", request_id, body.email)
    with handler_errors(request_id, UPDATE_SERVER_ERROR):
        try:
            applied = store.apply_password_reset(body.email, body.password)
        except UnknownEmailError:
            _unknown_reset_email(settings, PASSWORD_RESET_NOT_REQUESTED)
            applied = False
        if not applied:
            raise AccountError(401, PASSWORD_RESET_NOT_REQUESTED)

    return messages.message(messages.PASSWORD_CHANGE_SUCCESS)
