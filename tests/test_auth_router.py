from database.data_client import DataClientError


def test_login_sets_session_cookie(api, fake_client):
    anon = fake_client(token=None)
    anon.rpcs["login_user"] = lambda params: [
        {"status": "success", "session_token": "new-token", "role_name": "admin"}
    ] if params == {"_username": "admin", "_password": "secret"} else []

    response = api(fake_client(), token=None, anon=anon).post(
        "/api/auth/login", json={"username": "admin", "password": "secret"})

    assert response.status_code == 200
    assert response.json() == {"status": "success", "role_name": "admin", "token": "new-token"}
    cookie = response.headers["set-cookie"].lower()
    assert "jupagaba=new-token" in cookie
    assert "httponly" in cookie
    assert "path=/" in cookie
    assert "max-age=86400" in cookie


def test_login_rejects_bad_credentials(api, fake_client):
    anon = fake_client(token=None)
    anon.rpcs["login_user"] = [{"status": "error", "session_token": None, "role_name": None}]
    response = api(fake_client(), token=None, anon=anon).post(
        "/api/auth/login", json={"username": "admin", "password": "nope"})
    assert response.status_code == 401
    assert response.json()["message"] == "ชื่อผู้ใช้หรือรหัสผ่านไม่ถูกต้อง"
    assert "set-cookie" not in response.headers


def test_login_empty_result_is_unauthorized(api, fake_client):
    anon = fake_client(token=None)
    anon.rpcs["login_user"] = []
    response = api(fake_client(), token=None, anon=anon).post(
        "/api/auth/login", json={"username": "x", "password": "y"})
    assert response.status_code == 401


def test_login_database_error(api, fake_client):
    anon = fake_client(token=None)
    anon.rpcs["login_user"] = DataClientError("down")
    response = api(fake_client(), token=None, anon=anon).post(
        "/api/auth/login", json={"username": "x", "password": "y"})
    assert response.status_code == 500
    assert response.json() == {"message": "Database Error"}


def test_logout_deletes_session_and_cookie(api, fake_client):
    fake = fake_client(role=1)
    response = api(fake).post("/api/auth/logout")
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert fake.tables["sessions"] == []
    cookie = response.headers["set-cookie"].lower()
    assert "jupagaba=" in cookie
    assert "max-age=0" in cookie


def test_logout_clears_cookie_even_when_delete_fails(api, fake_client):
    fake = fake_client(role=1)
    fake.fail("delete", "sessions")
    response = api(fake).post("/api/auth/logout")
    assert response.status_code == 200
    assert "max-age=0" in response.headers["set-cookie"].lower()


def test_logout_without_cookie_touches_nothing(api, fake_client):
    fake = fake_client()
    response = api(fake, token=None).post("/api/auth/logout")
    assert response.status_code == 200
    assert fake.calls_to("delete") == []
