"""
Roll-up views over the recomputed average tables.

avg_teacher / avg_major / avg_faculty rows hold, per round and per question,
the summed score (total_score) and the number of respondents (respondent_count)
for one teacher / major / faculty. Every average shown here is
sum(total_score) / sum(respondent_count) over 'score' questions.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from database.data_client import DataClient
from services.assessment_service import latest_round_id, load_structure
from services.errors import ServiceError
from utils.display import average
from utils.round_formatter import format_round_id

logger = logging.getLogger(__name__)

AVG_TABLES = {
    "teacher": ("avg_teacher", "teacher_id"),
    "major": ("avg_major", "major_id"),
    "faculty": ("avg_faculty", "faculty_id"),
}


def _topic_number(section2: Any) -> Optional[int]:
    text = str(section2 or "")
    head, _, _ = text.partition(".")
    return int(head) if head.isdigit() else None


def summarize_averages(
    heads: List[Dict[str, Any]],
    details: List[Dict[str, Any]],
    avg_rows: Iterable[Dict[str, Any]],
    entity_key: str,
    entity_names: Dict[Any, str],
    entity_filter: Optional[Callable[[Any], bool]] = None,
) -> Dict[str, Any]:
    """Question, domain (topic) and per-entity averages for one round"""
    section_names = {
        h.get("section1"): h.get("head_description") or h.get("description") or f"ด้านที่ {h.get('section1')}"
        for h in heads
    }

    score_questions = [d for d in details if d.get("type") == "score"]
    valid_ids = {d.get("id") for d in score_questions}
    topic_titles: Dict[Tuple[Any, int], str] = {}
    for d in details:
        if d.get("type") != "score" and "." not in str(d.get("section2") or ""):
            topic = _topic_number(d.get("section2"))
            if topic is not None:
                topic_titles[(d.get("section1"), topic)] = d.get("detail")

    question_stats: Dict[Any, List[float]] = {}
    entity_stats: Dict[Any, List[float]] = {}
    global_sum, global_count = 0.0, 0
    for row in avg_rows:
        if row.get("question_id") not in valid_ids:
            continue
        if entity_filter is not None and not entity_filter(row.get(entity_key)):
            continue
        total = float(row.get("total_score") or 0)
        respondents = int(row.get("respondent_count") or 0)
        q = question_stats.setdefault(row["question_id"], [0.0, 0])
        q[0] += total
        q[1] += respondents
        e = entity_stats.setdefault(row.get(entity_key), [0.0, 0])
        e[0] += total
        e[1] += respondents
        global_sum += total
        global_count += respondents

    questions = []
    domain_stats: Dict[Tuple[Any, int], List[float]] = {}
    domain_names: Dict[Tuple[Any, int], str] = {}
    for d in score_questions:
        total, count = question_stats.get(d.get("id"), [0.0, 0])
        topic = _topic_number(d.get("section2")) or 0
        key = (d.get("section1"), topic)
        name = topic_titles.get(key) or section_names.get(d.get("section1")) or f"ด้านที่ {topic}"
        domain_names[key] = name
        ds = domain_stats.setdefault(key, [0.0, 0])
        ds[0] += total
        ds[1] += count
        questions.append({
            "id": d.get("id"),
            "section": str(d.get("section2")),
            "domain": name,
            "text": d.get("detail"),
            "score": average(total, count),
        })

    domains = [
        {
            "id": f"{s1}.{topic}",
            "name": domain_names[(s1, topic)],
            "subject": f"ด้านที่ {topic}",
            "score": average(total, count),
        }
        for (s1, topic), (total, count) in sorted(domain_stats.items(), key=lambda kv: (int(kv[0][0] or 0), kv[0][1]))
    ]

    entities = sorted(
        (
            {"id": eid, "name": entity_names.get(eid) or f"{entity_key} {eid}", "score": average(total, count)}
            for eid, (total, count) in entity_stats.items()
        ),
        key=lambda e: e["score"],
        reverse=True,
    )

    return {
        "questions": questions,
        "domains": domains,
        "entities": entities,
        "overall": average(global_sum, global_count),
        "respondents": global_count,
    }


# ==========================================================
# Organisation lookups (manual joins)
# ==========================================================

async def load_org(client: DataClient) -> Dict[str, Any]:
    faculties = await client.select("faculties", "id, faculty_name", order=["id"])
    majors = await client.select("majors", "id, major_name, faculty_id", order=["id"])
    rooms = await client.select("rooms", "id, major_id")
    relations = await client.select("teacher_relationship", "teacher_id, room_id")
    teachers = await client.select("teachers", "id, teacher_name", order=["teacher_name"])

    room_major = {r["id"]: r.get("major_id") for r in rooms}
    major_faculty = {m["id"]: m.get("faculty_id") for m in majors}
    teacher_majors: Dict[Any, Set[Any]] = {}
    for rel in relations:
        major_id = room_major.get(rel.get("room_id"))
        if rel.get("teacher_id") and major_id:
            teacher_majors.setdefault(rel["teacher_id"], set()).add(major_id)

    return {
        "faculties": faculties,
        "majors": majors,
        "teachers": teachers,
        "faculty_names": {f["id"]: f.get("faculty_name") for f in faculties},
        "major_names": {m["id"]: m.get("major_name") for m in majors},
        "teacher_names": {t["id"]: t.get("teacher_name") for t in teachers},
        "major_faculty": major_faculty,
        "teacher_majors": teacher_majors,
    }


def teachers_in(org: Dict[str, Any], faculty_id: Optional[int] = None, major_id: Optional[int] = None) -> Set[Any]:
    """Teachers advising at least one room of the given faculty / major (all when no filter)"""
    result = set()
    for teacher in org["teachers"]:
        majors = org["teacher_majors"].get(teacher["id"], set())
        if major_id is not None and major_id not in majors:
            continue
        if faculty_id is not None and faculty_id not in {org["major_faculty"].get(m) for m in majors}:
            continue
        result.add(teacher["id"])
    return result


async def participation(client: DataClient, around_id: int, teacher_scope: Optional[Set[Any]] = None) -> Dict[str, int]:
    total_students = await client.count("students")
    scored = await client.select("assessment_answer", "student_id",
                                 {"around_id": around_id, "score_value": ("not.is", None)})
    answered = await client.select("assessment_answer", "teacher_id", {"around_id": around_id})
    teacher_ids = {a.get("teacher_id") for a in answered}
    if teacher_scope is None:
        total_teachers = await client.count("teachers")
    else:
        total_teachers = len(teacher_scope)
        teacher_ids &= teacher_scope
    return {
        "total_students": total_students,
        "participated_students": len({a.get("student_id") for a in scored}),
        "total_teachers": total_teachers,
        "participated_teachers": len(teacher_ids),
    }


async def round_options(client: DataClient) -> List[Dict[str, Any]]:
    rows = await client.select("assessment_head", "around_id", order=["around_id.desc"])
    seen = []
    for row in rows:
        if row.get("around_id") not in seen:
            seen.append(row.get("around_id"))
    return [{"around_id": r, "label": format_round_id(r)} for r in seen]


async def _resolve_round(client: DataClient, round_id: Optional[int]) -> int:
    round_id = round_id or await latest_round_id(client)
    if not round_id:
        raise ServiceError(404, "ยังไม่มีรอบการประเมิน")
    return round_id


async def _summary(client: DataClient, level: str, round_id: int, names: Dict[Any, str],
                   entity_filter: Optional[Callable[[Any], bool]] = None) -> Dict[str, Any]:
    table, key = AVG_TABLES[level]
    heads, details = await load_structure(client, round_id)
    rows = await client.select(table, "*", {"around_id": round_id})
    return summarize_averages(heads, details, rows, key, names, entity_filter)


async def text_feedback(client: DataClient, round_id: int, teacher_id: int,
                        student_ids: Optional[Set[Any]] = None) -> List[Dict[str, Any]]:
    """Free-text answers for one teacher grouped by question"""
    questions = await client.select("assessment_detail", "id, detail, section1, section2",
                                    {"around_id": round_id, "type": "text"})
    answers = await client.select(
        "assessment_answer",
        "student_id, question_id, text_value",
        {"around_id": round_id, "teacher_id": teacher_id, "text_value": ("not.is", None)},
    )
    return group_text_answers(questions, answers, student_ids)


def group_text_answers(questions: List[Dict[str, Any]], answers: Iterable[Dict[str, Any]],
                       student_ids: Optional[Set[Any]] = None) -> List[Dict[str, Any]]:
    texts = {q.get("id"): q.get("detail") for q in questions}
    grouped: Dict[Any, List[str]] = {}
    for a in answers:
        value = (a.get("text_value") or "").strip()
        if not value or value.upper() == "NULL":
            continue
        if student_ids is not None and a.get("student_id") not in student_ids:
            continue
        grouped.setdefault(a.get("question_id"), []).append(value)
    return [{"question": texts[qid], "answers": values} for qid, values in grouped.items() if qid in texts]


# ==========================================================
# [Page] overviews
# ==========================================================

async def faculty_overview(client: DataClient, round_id: Optional[int] = None,
                           faculty_id: Optional[int] = None) -> Dict[str, Any]:
    round_id = await _resolve_round(client, round_id)
    org = await load_org(client)
    entity_filter = (lambda fid: fid == faculty_id) if faculty_id else None
    summary = await _summary(client, "faculty", round_id, org["faculty_names"], entity_filter)
    return {
        "around_id": round_id,
        "label": format_round_id(round_id),
        "rounds": await round_options(client),
        "faculties": [{"id": f["id"], "name": f.get("faculty_name")} for f in org["faculties"]],
        "selected_faculty": faculty_id,
        "summary": summary,
        "participation": await participation(client, round_id, teachers_in(org, faculty_id=faculty_id)),
    }


async def major_overview(client: DataClient, round_id: Optional[int] = None,
                         major_id: Optional[int] = None, faculty_id: Optional[int] = None) -> Dict[str, Any]:
    round_id = await _resolve_round(client, round_id)
    org = await load_org(client)

    def entity_filter(mid):
        if major_id and mid != major_id:
            return False
        if faculty_id and org["major_faculty"].get(mid) != faculty_id:
            return False
        return True

    summary = await _summary(client, "major", round_id, org["major_names"], entity_filter)
    return {
        "around_id": round_id,
        "label": format_round_id(round_id),
        "rounds": await round_options(client),
        "majors": [{"id": m["id"], "name": m.get("major_name"), "faculty_id": m.get("faculty_id")} for m in org["majors"]],
        "selected_major": major_id,
        "selected_faculty": faculty_id,
        "summary": summary,
        "participation": await participation(
            client, round_id, teachers_in(org, faculty_id=faculty_id, major_id=major_id)),
    }


async def individual_overview(client: DataClient, round_id: Optional[int] = None,
                              teacher_id: Optional[int] = None) -> Dict[str, Any]:
    round_id = await _resolve_round(client, round_id)
    org = await load_org(client)
    names = org["teacher_names"]

    summary = await _summary(client, "teacher", round_id, names,
                             (lambda tid: tid == teacher_id) if teacher_id else None)

    peers: List[Dict[str, Any]] = []
    feedback: List[Dict[str, Any]] = []
    if teacher_id:
        # same-major comparison
        majors = org["teacher_majors"].get(teacher_id, set())
        peer_ids = {tid for tid, ms in org["teacher_majors"].items() if ms & majors}
        everyone = await _summary(client, "teacher", round_id, names, lambda tid: tid in peer_ids)
        peers = everyone["entities"]
        feedback = await text_feedback(client, round_id, teacher_id)

    teachers = [
        {
            "id": t["id"],
            "name": t.get("teacher_name"),
            "major_ids": sorted(org["teacher_majors"].get(t["id"], set())),
        }
        for t in org["teachers"]
    ]
    return {
        "around_id": round_id,
        "label": format_round_id(round_id),
        "rounds": await round_options(client),
        "teachers": teachers,
        "selected_teacher": teacher_id,
        "teacher_name": names.get(teacher_id) if teacher_id else None,
        "summary": summary,
        "peers": peers,
        "feedback": feedback,
        "participation": await participation(client, round_id),
    }


async def teacher_report(client: DataClient, teacher_id: int, round_id: Optional[int] = None) -> Dict[str, Any]:
    """A teacher's own averages for the print view"""
    round_id = await _resolve_round(client, round_id)
    teacher = await client.select_one("teachers", "id, teacher_name", {"id": teacher_id})
    names = {teacher_id: (teacher or {}).get("teacher_name")}
    summary = await _summary(client, "teacher", round_id, names, lambda tid: tid == teacher_id)
    return {
        "around_id": round_id,
        "label": format_round_id(round_id),
        "teacher_name": names[teacher_id],
        "summary": summary,
        "feedback": await text_feedback(client, round_id, teacher_id),
    }
