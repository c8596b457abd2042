import pytest

ROUND = 25681


def _admin(fake_client):
    fake = fake_client(role=1)
    fake.tables["assessment_answer"] = [{"student_id": 1, "teacher_id": 7, "question_id": 12, "around_id": ROUND}]
    for name in ("run_calculate_avg_teacher", "run_calculate_avg_major", "run_calculate_avg_faculty"):
        fake.rpcs[name] = None
    return fake


def test_missing_round_is_rejected(api, fake_client):
    response = api(_admin(fake_client)).post("/api/avg", json={})
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Missing around_id"}


def test_non_numeric_round_is_rejected(api, fake_client):
    response = api(_admin(fake_client)).get("/api/avg", params={"around_id": "abc"})
    assert response.status_code == 400


def test_no_cookie_is_unauthorized(api, fake_client):
    response = api(_admin(fake_client), token=None).post("/api/avg", json={"around_id": ROUND})
    assert response.status_code == 401
    assert response.json()["message"] == "Unauthorized"


def test_post_uses_manual_invoker(api, fake_client):
    fake = _admin(fake_client)
    response = api(fake).post("/api/avg", json={"around_id": str(ROUND)})
    assert response.status_code == 200
    assert response.json()["success"] is True
    params = fake.calls_to("rpc", "run_calculate_avg_teacher")[0][2]
    assert params == {"p_around_id": ROUND, "p_triggered_by": "api_manual_trigger"}


def test_get_uses_get_invoker(api, fake_client):
    fake = _admin(fake_client)
    response = api(fake).get("/api/avg", params={"around_id": ROUND})
    assert response.status_code == 200
    params = fake.calls_to("rpc", "run_calculate_avg_faculty")[0][2]
    assert params["p_triggered_by"] == "api_get_trigger"


def test_status_mirrors_result(api, fake_client):
    fake = _admin(fake_client)
    fake.rpcs["get_current_role_id"] = 3
    response = api(fake).post("/api/avg", json={"around_id": ROUND, "triggered_by": "someone"})
    assert response.status_code == 403
    assert response.json()["success"] is False


def test_empty_round_is_not_found(api, fake_client):
    response = api(_admin(fake_client)).post("/api/avg", json={"around_id": 25672})
    assert response.status_code == 404


@pytest.mark.parametrize("content", [b"not json", b""])
def test_unreadable_body_is_internal_error(api, fake_client, content):
    fake = _admin(fake_client)
    response = api(fake).post("/api/avg", content=content, headers={"content-type": "application/json"})
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal Server Error"}
    assert fake.calls_to("rpc", "run_calculate_avg_teacher") == []


def test_non_object_body_is_missing_round(api, fake_client):
    response = api(_admin(fake_client)).post("/api/avg", json=[ROUND])
    assert response.status_code == 400


def test_zero_round_is_missing(api, fake_client):
    fake = _admin(fake_client)
    client = api(fake)
    assert client.post("/api/avg", json={"around_id": 0}).status_code == 400
    assert client.get("/api/avg", params={"around_id": "0"}).status_code == 400
    assert fake.calls_to("count") == []
