import asyncio
from datetime import datetime

import pytest

from schemas.assessments import AnswerSubmission
from services import student_service
from services.errors import ServiceError
from utils.display import LOCAL_TZ

ROUND = 25681
NOW = datetime(2025, 7, 1, 9, 0, tzinfo=LOCAL_TZ)


def _answer(teacher_id=7, question_id=12, score=4, around_id=ROUND):
    return {"student_id": 1, "teacher_id": teacher_id, "question_id": question_id,
            "around_id": around_id, "score_value": score, "text_value": None}


def test_dashboard_profile_and_advisors(fake_client):
    fake = fake_client(role=3, db_id=1)
    data = asyncio.run(student_service.load_dashboard(fake, NOW))
    student = data["student"]
    assert student["room_code"] == "CPE-1"
    assert student["major_name"] == "คอมพิวเตอร์"
    assert student["faculty_name"] == "วิศวกรรมศาสตร์"
    assert student["advisor_name"] == "อ.สมชาย, อ.สมหญิง"
    assert [(a["advisor_id"], a["is_completed"]) for a in data["assessments"]] == [(7, False), (8, False)]
    assert data["assessments"][0]["term_label"] == "ปีการศึกษา 2568 | ภาคเรียนที่ 1"


def test_dashboard_completion_follows_answer_rows(fake_client):
    fake = fake_client(role=3, db_id=1)
    fake.tables["assessment_answer"].append(_answer(teacher_id=7))
    data = asyncio.run(student_service.load_dashboard(fake, NOW))
    assert {a["advisor_id"]: a["is_completed"] for a in data["assessments"]} == {7: True, 8: False}

    fake.tables["assessment_answer"].clear()
    data = asyncio.run(student_service.load_dashboard(fake, NOW))
    assert not any(a["is_completed"] for a in data["assessments"])


def test_dashboard_hides_rounds_outside_window(fake_client):
    fake = fake_client(role=3, db_id=1)
    before_open = datetime(2025, 5, 1, tzinfo=LOCAL_TZ)
    assert asyncio.run(student_service.load_dashboard(fake, before_open))["assessments"] == []


def test_dashboard_without_room(fake_client, tables):
    tables["students"][0]["room_id"] = None
    fake = fake_client(role=3, db_id=1, tables=tables)
    student = asyncio.run(student_service.load_dashboard(fake, NOW))["student"]
    assert student["room_code"] == student_service.NO_ROOM
    assert student["major_name"] == "-"


def test_dashboard_unknown_identity(fake_client):
    with pytest.raises(ServiceError) as info:
        asyncio.run(student_service.load_dashboard(fake_client(role=3, db_id=None), NOW))
    assert info.value.status_code == 404


def test_advisor_page_lists_completed_keys(fake_client):
    fake = fake_client(role=3, db_id=1)
    fake.tables["assessment_answer"].append(_answer(teacher_id=8))
    data = asyncio.run(student_service.load_advisor_page(fake))
    assert [a["id"] for a in data["advisors"]] == [7, 8]
    assert data["completed"] == [f"{ROUND}-8"]
    assert data["rounds"][0]["around_id"] == ROUND


def test_form_shows_scale_questions(fake_client):
    fake = fake_client(role=3, db_id=1)
    form = asyncio.run(student_service.load_form(fake, ROUND, 7))
    assert [q["type"] for q in form["questions"]] == ["head", "scale", "scale", "head", "text"]
    assert form["questions"][1]["section"] == "1.1.1"
    assert form["already_assessed"] is False


def test_form_for_unknown_round(fake_client):
    with pytest.raises(ServiceError) as info:
        asyncio.run(student_service.load_form(fake_client(role=3, db_id=1), 11111, 7))
    assert info.value.status_code == 404


def test_submit_requires_every_scale_answer(fake_client):
    fake = fake_client(role=3, db_id=1)
    body = AnswerSubmission(teacher_id=7, answers={12: 5})
    with pytest.raises(ServiceError) as info:
        asyncio.run(student_service.submit_answers(fake, ROUND, body))
    assert info.value.status_code == 400
    assert "1" in info.value.message
    assert fake.tables["assessment_answer"] == []


def test_submit_rejects_out_of_range_score(fake_client):
    fake = fake_client(role=3, db_id=1)
    body = AnswerSubmission(teacher_id=7, answers={12: 5, 13: 9})
    with pytest.raises(ServiceError) as info:
        asyncio.run(student_service.submit_answers(fake, ROUND, body))
    assert info.value.status_code == 400


def test_submit_inserts_one_row_per_question_then_blocks_duplicates(fake_client):
    fake = fake_client(role=3, db_id=1)
    body = AnswerSubmission(teacher_id=7, answers={12: 5, 13: "4", 15: "ดีมาก"})
    assert asyncio.run(student_service.submit_answers(fake, ROUND, body)) == 3

    rows = {r["question_id"]: r for r in fake.tables["assessment_answer"]}
    assert set(rows) == {12, 13, 15}
    assert rows[13]["score_value"] == 4.0
    assert rows[15]["text_value"] == "ดีมาก"
    assert rows[15]["score_value"] is None

    with pytest.raises(ServiceError) as info:
        asyncio.run(student_service.submit_answers(fake, ROUND, body))
    assert info.value.status_code == 409
    assert info.value.message == student_service.ALREADY_ASSESSED


@pytest.mark.parametrize("start, end", [
    ("2020-01-01 00:00:00", "2020-02-01 00:00:00"),
    ("2099-01-01 00:00:00", "2099-12-31 23:59:59"),
])
def test_submit_rejects_round_outside_window(fake_client, tables, start, end):
    for d in tables["assessment_detail"]:
        d.update(start_date=start, end_date=end)
    fake = fake_client(role=3, db_id=1, tables=tables)
    body = AnswerSubmission(teacher_id=7, answers={12: 4, 13: 5, 15: "late"})
    with pytest.raises(ServiceError) as info:
        asyncio.run(student_service.submit_answers(fake, ROUND, body, now=NOW))
    assert info.value.status_code == 409
    assert info.value.message == student_service.ROUND_CLOSED
    assert fake.tables["assessment_answer"] == []
    assert fake.calls_to("insert") == []


def test_submit_rejects_teacher_outside_own_room(fake_client, tables):
    tables["teachers"].append({"id": 99, "teacher_name": "อ.ต่างห้อง"})
    fake = fake_client(role=3, db_id=1, tables=tables)
    body = AnswerSubmission(teacher_id=99, answers={12: 4, 13: 5})
    with pytest.raises(ServiceError) as info:
        asyncio.run(student_service.submit_answers(fake, ROUND, body, now=NOW))
    assert info.value.status_code == 403
    assert info.value.message == student_service.NOT_YOUR_ADVISOR
    assert fake.tables["assessment_answer"] == []


def test_history_is_unique_per_round_and_teacher(fake_client):
    fake = fake_client(role=3, db_id=1)
    fake.tables["assessment_answer"] += [
        _answer(7, 12), _answer(7, 13), _answer(8, 12), _answer(7, 12, around_id=25672),
    ]
    history = asyncio.run(student_service.load_history(fake))
    assert [(h["around"], h["teacher_id"]) for h in history] == [(ROUND, 7), (ROUND, 8), (25672, 7)]
    assert history[0]["teacher_name"] == "อ.สมชาย"
    assert history[-1]["label"] == "ปีการศึกษา 2567 | ภาคเรียนที่ 2"


def test_submission_route(api, fake_client):
    fake = fake_client(role=3, db_id=1)
    client = api(fake)
    response = client.post(f"/dashboard/assessment-advisor/{ROUND}",
                           json={"teacher_id": 8, "answers": {"12": 3, "13": 4, "15": ""}})
    assert response.status_code == 200
    assert response.json()["data"]["inserted"] == 3

    again = client.post(f"/dashboard/assessment-advisor/{ROUND}",
                        json={"teacher_id": 8, "answers": {"12": 3, "13": 4}})
    assert again.status_code == 409
    assert again.json() == {"success": False, "error": {"code": 409, "message": student_service.ALREADY_ASSESSED}}


def test_submission_route_after_round_closed(api, fake_client, tables):
    for d in tables["assessment_detail"]:
        d["end_date"] = "2020-02-01 00:00:00"
    response = api(fake_client(role=3, db_id=1, tables=tables)).post(
        f"/dashboard/assessment-advisor/{ROUND}",
        json={"teacher_id": 7, "answers": {"12": 4, "13": 5, "15": "late"}},
    )
    assert response.status_code == 409
    assert response.json() == {"success": False, "error": {"code": 409, "message": student_service.ROUND_CLOSED}}
