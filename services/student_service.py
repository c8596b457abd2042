import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from database.data_client import DataClient
from dependencies.security import resolve_identity
from schemas.assessments import AnswerSubmission
from services.assessment_service import form_view, list_rounds, load_structure, to_question
from services.errors import ServiceError
from utils.display import is_open, join_names, now_local, unique_rounds
from utils.round_formatter import format_round_id

logger = logging.getLogger(__name__)

NO_ROOM = "ยังไม่อยู่ในห้อง"
NO_ADVISOR = "ยังไม่มีอาจารย์ที่ปรึกษา"
UNKNOWN_TEACHER = "ไม่ระบุชื่อ"
ALREADY_ASSESSED = "ท่านได้ทำการประเมินอาจารย์ท่านนี้ในรอบนี้ไปแล้ว"
ROUND_CLOSED = "รอบการประเมินนี้ไม่อยู่ในช่วงเวลาที่เปิดให้ประเมิน"
NOT_YOUR_ADVISOR = "ท่านไม่สามารถประเมินอาจารย์ท่านนี้ได้"


async def has_completed(client: DataClient, student_id: int, teacher_id: int, around_id: int) -> bool:
    """An answer row for (student, teacher, round) means that evaluation is done"""
    count = await client.count("assessment_answer", {
        "student_id": student_id,
        "teacher_id": teacher_id,
        "around_id": around_id,
    })
    return count > 0


async def _own_student(client: DataClient, columns: str = "*") -> Dict[str, Any]:
    # RLS scopes `students` to the caller's own row
    student = await client.select_one("students", columns)
    if not student:
        raise ServiceError(404, "ไม่พบข้อมูลนักศึกษา")
    return student


async def room_hierarchy(client: DataClient, room_id: Optional[int]) -> Dict[str, Any]:
    """room -> major -> faculty, one point query per level"""
    info = {"room_id": room_id, "room_code": NO_ROOM, "major_name": "-", "faculty_name": "-"}
    if not room_id:
        return info

    room = await client.select_one("rooms", "id, room_code, major_id", {"id": room_id})
    if not room:
        return info
    info["room_code"] = room.get("room_code") or NO_ROOM

    major = None
    if room.get("major_id"):
        major = await client.select_one("majors", "id, major_name, faculty_id", {"id": room["major_id"]})
    if major:
        info["major_name"] = major.get("major_name") or "-"
        if major.get("faculty_id"):
            faculty = await client.select_one("faculties", "id, faculty_name", {"id": major["faculty_id"]})
            if faculty:
                info["faculty_name"] = faculty.get("faculty_name") or "-"
    return info


async def advisors_for_room(client: DataClient, room_id: Optional[int]) -> List[Dict[str, Any]]:
    if not room_id:
        return []
    relations = await client.select("teacher_relationship", "teacher_id", {"room_id": room_id})
    teacher_ids = sorted({r["teacher_id"] for r in relations if r.get("teacher_id")})
    if not teacher_ids:
        return []
    return await client.select("teachers", "id, teacher_name", {"id": ("in", teacher_ids)}, order=["id"])


# ==========================================================
# [Page] /dashboard
# ==========================================================

async def load_dashboard(client: DataClient, now: Optional[datetime] = None) -> Dict[str, Any]:
    student_id = await resolve_identity(client)
    if not student_id:
        raise ServiceError(404, "ไม่พบข้อมูลผู้ใช้งาน")

    student = await client.select_one("students", "*", {"id": student_id})
    if not student:
        raise ServiceError(404, "ไม่พบข้อมูลนักศึกษา")

    hierarchy = await room_hierarchy(client, student.get("room_id"))

    # RLS: students only see their own advisors
    advisors = await client.select("teachers", "id, teacher_name")

    profile = {
        **student,
        **hierarchy,
        "advisor_name": join_names((a.get("teacher_name") for a in advisors), NO_ADVISOR),
        "advisors_list": advisors,
    }

    now_iso = (now or now_local()).isoformat()
    details = await client.select(
        "assessment_detail",
        "around_id, start_date, end_date",
        {"start_date": ("lte", now_iso), "end_date": ("gte", now_iso)},
    )

    statuses = []
    for round_row in unique_rounds(details):
        around_id = round_row["around_id"]
        term_label = format_round_id(around_id)
        for advisor in advisors:
            statuses.append({
                "around_id": around_id,
                "term_label": term_label,
                "advisor_id": advisor["id"],
                "advisor_name": advisor.get("teacher_name"),
                "is_completed": await has_completed(client, student_id, advisor["id"], around_id),
            })

    return {"student": profile, "assessments": statuses}


# ==========================================================
# [Page] /dashboard/assessment-advisor
# ==========================================================

async def load_advisor_page(client: DataClient) -> Dict[str, Any]:
    student = await _own_student(client)
    room_id = student.get("room_id")
    room = await client.select_one("rooms", "id, room_code", {"id": room_id}) if room_id else None
    advisors = await advisors_for_room(client, room_id)

    answered = await client.select("assessment_answer", "around_id, teacher_id", {"student_id": student["id"]})
    completed = sorted({f"{a['around_id']}-{a['teacher_id']}" for a in answered})

    return {
        "student": {**student, "room_code": (room or {}).get("room_code") or NO_ROOM},
        "advisors": advisors,
        "rounds": await list_rounds(client),
        "completed": completed,
    }


async def load_form(client: DataClient, around_id: int, teacher_id: int) -> Dict[str, Any]:
    student = await _own_student(client, "id")
    heads, details = await load_structure(client, around_id)
    if not details:
        raise ServiceError(404, "ไม่พบแบบประเมินของรอบนี้")

    return {
        "around_id": around_id,
        "label": format_round_id(around_id),
        "teacher_id": teacher_id,
        **form_view(heads, details),
        "already_assessed": await has_completed(client, student["id"], teacher_id, around_id),
    }


def _valid_score(value: Any, low: Any, high: Any) -> bool:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return False
    if low is not None and score < float(low):
        return False
    if high is not None and score > float(high):
        return False
    return True


async def submit_answers(
    client: DataClient,
    around_id: int,
    submission: AnswerSubmission,
    now: Optional[datetime] = None,
) -> int:
    student = await _own_student(client, "id, room_id")
    _, details = await load_structure(client, around_id)
    questions = [to_question(d) for d in details if d.get("type") in ("score", "text")]
    if not questions:
        raise ServiceError(404, "ไม่พบแบบประเมินของรอบนี้")

    # every detail row of a round carries the same window
    window = details[0]
    if not is_open(window.get("start_date"), window.get("end_date"), now):
        raise ServiceError(409, ROUND_CLOSED)

    advisors = await advisors_for_room(client, student.get("room_id"))
    if submission.teacher_id not in {a["id"] for a in advisors}:
        raise ServiceError(403, NOT_YOUR_ADVISOR)

    answers = submission.answers
    scale = [q for q in questions if q["type"] == "scale"]
    unanswered = [q for q in scale if answers.get(q["id"]) in (None, "")]
    if unanswered:
        raise ServiceError(400, f"กรุณาตอบคำถามให้ครบทุกข้อ (ยังเหลือ {len(unanswered)} ข้อ)")
    for q in scale:
        if not _valid_score(answers[q["id"]], q["start_score"], q["end_score"]):
            raise ServiceError(400, f"คะแนนของข้อ {q['section']} ไม่อยู่ในช่วงที่กำหนด")

    if await has_completed(client, student["id"], submission.teacher_id, around_id):
        raise ServiceError(409, ALREADY_ASSESSED)

    records = [
        {
            "student_id": student["id"],
            "teacher_id": submission.teacher_id,
            "question_id": q["id"],
            "score_value": float(answers[q["id"]]) if q["type"] == "scale" else None,
            "text_value": str(answers.get(q["id"]) or "") if q["type"] == "text" else None,
            "around_id": around_id,
        }
        for q in questions
    ]
    await client.insert("assessment_answer", records)
    logger.info(f"student {student['id']} assessed teacher {submission.teacher_id} in round {around_id}")
    return len(records)


# ==========================================================
# [Page] /dashboard/history
# ==========================================================

async def load_history(client: DataClient) -> List[Dict[str, Any]]:
    student = await _own_student(client, "id")
    answers = await client.select("assessment_answer", "around_id, teacher_id", {"student_id": student["id"]})

    # one evaluation = many answer rows; keep one per (round, teacher)
    pairs: Dict[str, Dict[str, Any]] = {}
    for a in answers:
        pairs.setdefault(f"{a['around_id']}-{a['teacher_id']}", {"around": a["around_id"], "teacher_id": a["teacher_id"]})

    teacher_ids = sorted({p["teacher_id"] for p in pairs.values()})
    names: Dict[int, str] = {}
    if teacher_ids:
        teachers = await client.select("teachers", "id, teacher_name", {"id": ("in", teacher_ids)})
        names = {t["id"]: t.get("teacher_name") for t in teachers}

    history = [
        {
            **p,
            "label": format_round_id(p["around"]),
            "teacher_name": names.get(p["teacher_id"]) or UNKNOWN_TEACHER,
            "status": True,
        }
        for p in pairs.values()
    ]
    return sorted(history, key=lambda h: int(h["around"]), reverse=True)
