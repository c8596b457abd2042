import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from database.data_client import DataClient
from dependencies.security import resolve_identity
from services.assessment_service import latest_round_id, list_round_rows, load_structure
from services.errors import ServiceError
from services.overview_service import group_text_answers, text_feedback
from utils.display import average, is_open, ratio_percent, round_card
from utils.round_formatter import format_round_id

logger = logging.getLogger(__name__)


async def _own_teacher(client: DataClient) -> Dict[str, Any]:
    teacher_id = await resolve_identity(client)
    if not teacher_id:
        raise ServiceError(404, "ไม่พบข้อมูลผู้ใช้งาน")
    teacher = await client.select_one("teachers", "*", {"id": teacher_id})
    if not teacher:
        raise ServiceError(404, "ไม่พบข้อมูลอาจารย์")
    return teacher


async def advised_rooms(client: DataClient, teacher_id: int) -> List[Dict[str, Any]]:
    """Rooms the teacher advises, with their major name"""
    relations = await client.select("teacher_relationship", "room_id", {"teacher_id": teacher_id})
    room_ids = sorted({r["room_id"] for r in relations if r.get("room_id")})
    if not room_ids:
        return []

    rooms = await client.select("rooms", "id, room_code, major_id", {"id": ("in", room_ids)}, order=["room_code"])
    major_ids = sorted({r["major_id"] for r in rooms if r.get("major_id")})
    majors: Dict[Any, str] = {}
    if major_ids:
        rows = await client.select("majors", "id, major_name", {"id": ("in", major_ids)})
        majors = {m["id"]: m.get("major_name") for m in rows}

    return [
        {"id": r["id"], "room_code": r.get("room_code"), "major_name": majors.get(r.get("major_id")) or "-"}
        for r in rooms
    ]


# ==========================================================
# [Page] /dashboard-teacher
# ==========================================================

async def load_teacher_dashboard(client: DataClient) -> Dict[str, Any]:
    teacher = await _own_teacher(client)
    rooms = await advised_rooms(client, teacher["id"])

    round_id = await latest_round_id(client)
    comments: List[Dict[str, Any]] = []
    if round_id:
        comments = await text_feedback(client, round_id, teacher["id"])

    return {
        "teacher": teacher,
        "rooms": rooms,
        "current_round": {"around_id": round_id, "label": format_round_id(round_id)} if round_id else None,
        "comments": comments,
    }


# ==========================================================
# [Page] /dashboard-teacher/advisory-class
# ==========================================================

async def load_advisory_class(client: DataClient, room_id: Optional[int] = None) -> Dict[str, Any]:
    teacher = await _own_teacher(client)
    rooms = await advised_rooms(client, teacher["id"])

    selected = None
    students: List[Dict[str, Any]] = []
    if room_id is not None:
        selected = next((r for r in rooms if r["id"] == room_id), None)
        if selected is None:
            raise ServiceError(404, "ไม่พบห้องเรียนที่ท่านดูแล")
        students = await client.select("students", "*", {"room_id": room_id}, order=["student_id"])

    return {"rooms": rooms, "selected_room": selected, "students": students}


# ==========================================================
# [Page] /dashboard-teacher/assessment-status
# ==========================================================

def _parent_aspect(section: str, aspects: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return next((a for a in aspects if section.startswith(a["section"] + ".")), None)


def summarize_answers(
    details: List[Dict[str, Any]],
    answers: List[Dict[str, Any]],
    students: List[Dict[str, Any]],
    rooms: List[Dict[str, Any]],
    room_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Participation and score breakdown for one teacher in one round.

    Aspects are the 'head' rows; an aspect with any text item under it is an
    open-ended block and is left out of every score figure.
    """
    def section_of(d):
        return f"{d.get('section1')}.{d.get('section2')}"

    aspects = [{"id": d["id"], "section": section_of(d), "name": d.get("detail")}
               for d in details if d.get("type") == "head"]
    text_sections = [section_of(d) for d in details if d.get("type") == "text"]
    excluded = {a["section"] for a in aspects
                if any(s.startswith(a["section"] + ".") for s in text_sections)}
    aspects = [a for a in aspects if a["section"] not in excluded]

    questions = []
    for d in details:
        if d.get("type") != "score":
            continue
        if any(section_of(d).startswith(s + ".") for s in excluded):
            continue
        owner = _parent_aspect(section_of(d), aspects)
        questions.append({
            "id": d["id"],
            "section": section_of(d),
            "text": d.get("detail"),
            "aspect": owner["section"] if owner else None,
        })
    question_ids = {q["id"] for q in questions}

    student_room = {s["id"]: s.get("room_id") for s in students}
    if room_id is not None:
        scoped_ids = {sid for sid, rid in student_room.items() if rid == room_id}
    else:
        scoped_ids = set(student_room)

    scored = [a for a in answers
              if a.get("question_id") in question_ids and a.get("score_value") is not None]

    def score_avg(rows: Iterable[Dict[str, Any]]) -> float:
        values = [float(r["score_value"]) for r in rows]
        return average(sum(values), len(values))

    answered_students = {a.get("student_id") for a in answers}

    room_stats = []
    for room in rooms:
        members = {sid for sid, rid in student_room.items() if rid == room["id"]}
        done = members & answered_students
        room_stats.append({
            "room_id": room["id"],
            "room_code": room.get("room_code"),
            "total": len(members),
            "completed": len(done),
            "percentage": ratio_percent(len(done), len(members)),
            "average": score_avg(a for a in scored if a.get("student_id") in members),
        })

    in_scope = [a for a in scored if a.get("student_id") in scoped_ids]
    distribution: Dict[str, int] = {}
    for a in in_scope:
        key = str(int(float(a["score_value"]))) if float(a["score_value"]).is_integer() else str(a["score_value"])
        distribution[key] = distribution.get(key, 0) + 1

    question_scores = [
        {**q, "score": score_avg(a for a in in_scope if a.get("question_id") == q["id"])}
        for q in questions
    ]
    aspect_scores = []
    for aspect in aspects:
        ids = {q["id"] for q in questions if q["aspect"] == aspect["section"]}
        aspect_scores.append({**aspect, "score": score_avg(a for a in in_scope if a.get("question_id") in ids)})

    text_questions = [{"id": d["id"], "detail": d.get("detail")} for d in details if d.get("type") == "text"]
    done_in_scope = scoped_ids & answered_students

    return {
        "total_students": len(scoped_ids),
        "completed": len(done_in_scope),
        "percentage": ratio_percent(len(done_in_scope), len(scoped_ids)),
        "average": score_avg(in_scope),
        "distribution": dict(sorted(distribution.items())),
        "aspects": aspect_scores,
        "questions": question_scores,
        "rooms": room_stats,
        "comments": group_text_answers(text_questions, answers, scoped_ids),
    }


def pick_display_rounds(round_rows: List[Dict[str, Any]], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Open rounds; when none is open, just the newest one"""
    active = [r for r in round_rows if is_open(r.get("start_date"), r.get("end_date"), now)]
    return active or round_rows[:1]


async def load_assessment_status(
    client: DataClient,
    round_id: Optional[int] = None,
    room_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    teacher = await _own_teacher(client)
    rooms = await advised_rooms(client, teacher["id"])
    if room_id is not None and room_id not in {r["id"] for r in rooms}:
        raise ServiceError(404, "ไม่พบห้องเรียนที่ท่านดูแล")

    rounds = pick_display_rounds(await list_round_rows(client), now)
    cards = [round_card(r, now) for r in rounds]
    current = next((r for r in cards if r["around_id"] == round_id), cards[0] if cards else None)

    result: Dict[str, Any] = {"rounds": cards, "current_round": current, "rooms": rooms, "selected_room": room_id}
    if current is None:
        result["overall"] = None
        result["selected"] = None
        return result

    students: List[Dict[str, Any]] = []
    if rooms:
        students = await client.select("students", "id, student_id, student_name, room_id",
                                       {"room_id": ("in", [r["id"] for r in rooms])})
    _, details = await load_structure(client, current["around_id"])
    answers = await client.select(
        "assessment_answer",
        "student_id, question_id, score_value, text_value",
        {"around_id": current["around_id"], "teacher_id": teacher["id"]},
    )

    result["overall"] = summarize_answers(details, answers, students, rooms)
    result["selected"] = summarize_answers(details, answers, students, rooms, room_id) if room_id else None
    return result
