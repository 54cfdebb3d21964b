def test_basic_update_changes_name(client, logged_in, store):
    userid = logged_in()
    resp = client.patch("/userBasicUpdate", json={"name": "CR7"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["userid"] == userid
    assert body["name"] == "CR7"
    assert body["email"] == "ronaldo@mail.com"
    assert "passwordhash" not in body
    assert store.get_user_by_id(userid)["name"] == "CR7"


def test_basic_update_role_by_admin(client, logged_in, store):
    userid = logged_in()
    store.users[userid]["role"] = ["user", "admin"]
    client.post("/login", json={"email": "ronaldo@mail.com", "password": "Secret123"})
    resp = client.patch("/userBasicUpdate", json={"role": ["user", "admin"]})
    assert resp.status_code == 200
    assert resp.json()["role"] == ["user", "admin"]
    assert store.get_user_by_id(userid)["name"] == "Ronaldo"


def test_basic_update_role_needs_admin(client, logged_in, store):
    userid = logged_in()
    resp = client.patch("/userBasicUpdate", json={"name": "CR7", "role": ["user", "admin"]})
    assert resp.status_code == 403
    assert resp.json()["errorCode"] == "FORBIDDEN"
    assert store.get_user_by_id(userid)["role"] == ["user"]
    assert store.get_user_by_id(userid)["name"] == "Ronaldo"


def test_basic_update_without_fields(client, logged_in):
    logged_in()
    resp = client.patch("/userBasicUpdate", json={})
    assert resp.status_code == 400
    assert resp.json()["errorCode"] == "NO_UPDATE_FIELDS"


def test_basic_update_rejects_unknown_columns(client, logged_in, store):
    userid = logged_in()
    resp = client.patch("/userBasicUpdate", json={"email": "x@mail.com", "passwordhash": "x"})
    assert resp.status_code == 400
    assert resp.json()["errorCode"] == "VALIDATION_ERROR"
    assert store.get_user_by_id(userid)["email"] == "ronaldo@mail.com"


def test_basic_update_rejects_unknown_role(client, logged_in):
    logged_in()
    resp = client.patch("/userBasicUpdate", json={"role": ["superuser"]})
    assert resp.status_code == 400


def test_basic_update_requires_auth(client):
    resp = client.patch("/userBasicUpdate", json={"name": "x"})
    assert resp.status_code == 401


def test_password_update_wrong_current(client, logged_in):
    logged_in()
    resp = client.patch("/userPasswordUpdate", json={"password": "Nope1234", "new_password": "NewSecret1"})
    assert resp.status_code == 400
    assert resp.json()["errorCode"] == "CURRENT_PASSWORD_INCORRECT"


def test_password_update_rejects_password_over_byte_limit(client, logged_in, store):
    userid = logged_in()
    before = store.get_user_by_id(userid)["passwordhash"]
    resp = client.patch("/userPasswordUpdate", json={"password": "Secret123", "new_password": "é" * 40})
    assert resp.status_code == 400
    assert resp.json()["errorCode"] == "VALIDATION_ERROR"
    assert store.get_user_by_id(userid)["passwordhash"] == before


def test_password_update_ends_sessions(client, logged_in, stale_cookie):
    userid = logged_in()
    token = stale_cookie(userid)

    resp = client.patch("/userPasswordUpdate", json={"password": "Secret123", "new_password": "NewSecret1"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Password updated successfully! Please log in again."
    assert "Max-Age=0" in resp.headers["set-cookie"]

    client.cookies.clear()
    client.cookies.set("access_token", token)
    assert client.get("/users").status_code == 401

    resp = client.post("/login", json={"email": "ronaldo@mail.com", "password": "Secret123"})
    assert resp.json()["errorCode"] == "PASSWORD_NOT_MATCH"
    resp = client.post("/login", json={"email": "ronaldo@mail.com", "password": "NewSecret1"})
    assert resp.status_code == 200


def test_email_change_flow(client, logged_in, mailer, store):
    userid = logged_in()
    resp = client.post("/userEmailUpdateInit", json={"new_email": "cr7@mail.com"})
    assert resp.status_code == 200
    assert mailer.sent[-1].to == "cr7@mail.com"
    assert mailer.sent[-1].template_key == "email_change"

    code = mailer.last_code("cr7@mail.com")
    resp = client.patch("/userEmailUpdateVerify", json={"verificationCode": code})
    assert resp.status_code == 200
    assert store.get_user_by_id(userid)["email"] == "cr7@mail.com"

    # a used code does not apply twice
    resp = client.patch("/userEmailUpdateVerify", json={"verificationCode": code})
    assert resp.status_code == 401
    assert resp.json()["errorCode"] == "EMAIL_VERIFY_FAILURE"

    resp = client.post("/login", json={"email": "cr7@mail.com", "password": "Secret123"})
    assert resp.status_code == 200


def test_email_change_to_taken_address(client, logged_in, signup):
    signup(name="Messi", email="messi@mail.com")
    logged_in()
    resp = client.post("/userEmailUpdateInit", json={"new_email": "messi@mail.com"})
    assert resp.status_code == 409
    assert resp.json()["errorCode"] == "DUPLICATE_EMAIL"


def test_email_change_address_taken_before_verify(client, logged_in, signup, mailer):
    logged_in()
    client.post("/userEmailUpdateInit", json={"new_email": "late@mail.com"})
    code = mailer.last_code("late@mail.com")
    signup(name="Late", email="late@mail.com")

    resp = client.patch("/userEmailUpdateVerify", json={"verificationCode": code})
    assert resp.status_code == 409


def test_email_change_wrong_code(client, logged_in, store):
    userid = logged_in()
    client.post("/userEmailUpdateInit", json={"new_email": "cr7@mail.com"})
    resp = client.patch("/userEmailUpdateVerify", json={"verificationCode": "BAD000"})
    assert resp.status_code == 401
    assert resp.json()["errorCode"] == "EMAIL_VERIFY_FAILURE"
    assert store.get_user_by_id(userid)["email"] == "ronaldo@mail.com"


def test_email_change_new_request_replaces_old(client, logged_in, mailer):
    logged_in()
    client.post("/userEmailUpdateInit", json={"new_email": "first@mail.com"})
    first = mailer.last_code("first@mail.com")
    client.post("/userEmailUpdateInit", json={"new_email": "second@mail.com"})
    second = mailer.last_code("second@mail.com")

    if first != second:
        resp = client.patch("/userEmailUpdateVerify", json={"verificationCode": first})
        assert resp.status_code == 401
    resp = client.patch("/userEmailUpdateVerify", json={"verificationCode": second})
    assert resp.status_code == 200
