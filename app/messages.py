"""
Success messages returned as {"message": ...}.
"""

LOGOUT_SUCCESS = "User successfully logged out!"
EMAIL_VERIFY_SUCCESS = "Email Successfully Verified!"
EMAIL_VERIFY_CODE_RESET = "New verification code have been sent to your registered email!"
PASSWORD_UPDATE_SUCCESS = "Password updated successfully! Please log in again."
EMAIL_UPDATE_INIT_SUCCESS = "Verification code sent to the new email address!"
PASSWORD_RESET_INIT = "If that email exists, a password reset code has been sent."
PASSWORD_RESET_VERIFIED = "Password reset code verified!"
PASSWORD_CHANGE_SUCCESS = "Password changed successfully!"
AVAILABILITY_CREATED = "Availability created successfully"
HEALTHY = "App is up and running!"


def message(text: str) -> dict:
    return {"message": text}
