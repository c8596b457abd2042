"""
Assessment rounds and their question structure.

assessment_head    one row per section (section1, head_description, description)
assessment_detail  one row per topic ('head', section2 "n") or item ('score' | 'text',
                   section2 "n.m"); every row carries the round window
assessment_answer  one row per (student, teacher, round, question)
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from database.data_client import DataClient, DataClientError
from schemas.assessments import AssessmentIn
from services.errors import ServiceError
from utils.display import round_card, unique_rounds
from utils.round_formatter import build_round_id, format_round_id

logger = logging.getLogger(__name__)

FK_VIOLATION = "23503"


def _section2_parts(value: Any) -> Tuple[int, int]:
    """"2" -> (2, 0), "2.3" -> (2, 3)"""
    text = str(value or "0")
    topic, _, item = text.partition(".")
    try:
        return int(topic or 0), int(item or 0)
    except ValueError:
        return 0, 0


def detail_sort_key(detail: Dict[str, Any]) -> Tuple[int, int, int]:
    topic, item = _section2_parts(detail.get("section2"))
    return int(detail.get("section1") or 0), topic, item


def question_section(detail: Dict[str, Any]) -> str:
    return f"{detail.get('section1')}.{detail.get('section2')}"


def to_question(detail: Dict[str, Any]) -> Dict[str, Any]:
    kind = detail.get("type")
    return {
        "id": detail.get("id"),
        "type": "scale" if kind == "score" else kind,
        "question_text": detail.get("detail"),
        "start_score": detail.get("min_score"),
        "end_score": detail.get("max_score"),
        "around_id": detail.get("around_id"),
        "section": question_section(detail),
    }


# ==========================================================
# Reads
# ==========================================================

async def list_round_rows(client: DataClient) -> List[Dict[str, Any]]:
    """One row per round (around_id, start_date, end_date), newest first"""
    rows = await client.select("assessment_detail", "around_id, start_date, end_date",
                               order=["around_id.desc"])
    return unique_rounds(rows)


async def list_rounds(client: DataClient, check_start: bool = True) -> List[Dict[str, Any]]:
    return [round_card(row, check_start=check_start) for row in await list_round_rows(client)]


async def latest_round_id(client: DataClient) -> Optional[int]:
    row = await client.select_one("assessment_head", "around_id", order=["around_id.desc"])
    return row.get("around_id") if row else None


async def load_structure(client: DataClient, around_id: int) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    heads = await client.select("assessment_head", "*", {"around_id": around_id}, order=["section1"])
    details = await client.select("assessment_detail", "*", {"around_id": around_id},
                                  order=["section1", "section2"])
    return heads, sorted(details, key=detail_sort_key)


def form_view(heads: List[Dict[str, Any]], details: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Sections + answerable questions, as the student form shows them"""
    sections = [
        {
            "id": h.get("id"),
            "section": str(h.get("section1")),
            "head_description": h.get("head_description") or "",
            "description": h.get("description") or "",
            "around_id": h.get("around_id"),
        }
        for h in heads
    ]
    return {"sections": sections, "questions": [to_question(d) for d in details]}


def structure_view(around_id: int, heads: List[Dict[str, Any]], details: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Nested section -> topic -> question view used by the admin editor"""
    sections = []
    for head in sorted(heads, key=lambda h: int(h.get("section1") or 0)):
        s_no = head.get("section1")
        in_section = [d for d in details if d.get("section1") == s_no]
        topics = []
        for topic in (d for d in in_section if d.get("type") == "head"):
            t_no, _ = _section2_parts(topic.get("section2"))
            questions = [
                {"id": d.get("id"), "text": d.get("detail"), "type": "scale" if d.get("type") == "score" else d.get("type")}
                for d in in_section
                if d.get("type") != "head" and _section2_parts(d.get("section2"))[0] == t_no
            ]
            topics.append({"id": topic.get("id"), "text": topic.get("detail"), "questions": questions})
        sections.append({
            "section1": s_no,
            "title": head.get("head_description") or "",
            "description": head.get("description") or "",
            "topics": topics,
        })

    first = details[0] if details else {}
    scored = next((d for d in details if d.get("type") == "score"), {})
    return {
        "around_id": around_id,
        "label": format_round_id(around_id),
        "start_date": first.get("start_date"),
        "end_date": first.get("end_date"),
        "min_score": scored.get("min_score"),
        "max_score": scored.get("max_score"),
        "sections": sections,
    }


# ==========================================================
# Writes (admin)
# ==========================================================

def build_structure_rows(form: AssessmentIn) -> Tuple[int, List[Dict[str, Any]], List[Dict[str, Any]]]:
    around_id = build_round_id(form.academic_year, form.term)
    start_time = f"{form.start_date.isoformat()} 00:00:00" if form.start_date else None
    end_time = f"{form.end_date.isoformat()} 23:59:59" if form.end_date else None

    heads = [
        {
            "section1": s_no,
            "description": section.description or None,
            "head_description": section.title or None,
            "around_id": around_id,
        }
        for s_no, section in enumerate(form.sections, start=1)
    ]

    details: List[Dict[str, Any]] = []
    for s_no, section in enumerate(form.sections, start=1):
        for t_no, topic in enumerate(section.topics, start=1):
            details.append({
                "section1": s_no,
                "section2": str(t_no),
                "detail": topic.text,
                "type": "head",
                "around_id": around_id,
                "start_date": start_time,
                "end_date": end_time,
                "max_score": None,
                "min_score": None,
            })
            for q_no, question in enumerate(topic.questions, start=1):
                is_scale = question.type == "scale"
                details.append({
                    "section1": s_no,
                    "section2": f"{t_no}.{q_no}",
                    "detail": question.text,
                    "type": "score" if is_scale else question.type,
                    "around_id": around_id,
                    "start_date": start_time,
                    "end_date": end_time,
                    "max_score": form.max_score if is_scale else None,
                    "min_score": form.min_score if is_scale else None,
                })
    return around_id, heads, details


async def create_assessment(client: DataClient, form: AssessmentIn) -> int:
    around_id, heads, details = build_structure_rows(form)

    existing = await client.select("assessment_head", "around_id", {"around_id": around_id}, limit=1)
    if existing:
        raise ServiceError(
            409,
            f"มีการบันทึกรอบการประเมิน ปี {form.academic_year} เทอม {form.term} ({around_id}) ไว้เรียบร้อยแล้ว "
            "ระบบไม่สามารถสร้างซ้ำได้ หากต้องการแก้ไขข้อมูล กรุณาไปที่เมนูจัดการแบบประเมิน",
        )

    if heads:
        await client.insert("assessment_head", heads)
    if details:
        await client.insert("assessment_detail", details)
    logger.info(f"assessment round {around_id} created ({len(heads)} sections, {len(details)} rows)")
    return around_id


async def _delete_structure(client: DataClient, around_id: int) -> None:
    # details first: answers reference details, details sit under heads
    try:
        await client.delete("assessment_detail", {"around_id": around_id})
    except DataClientError as e:
        if e.code == FK_VIOLATION:
            raise ServiceError(
                409,
                "ไม่สามารถบันทึกโครงสร้างใหม่ได้เนื่องจากมีข้อมูลคำตอบค้างอยู่ "
                "กรุณาเลือกตัวเลือก 'ล้างข้อมูลคำตอบทั้งหมด' เพื่อทำการบันทึก",
            )
        raise
    try:
        await client.delete("assessment_head", {"around_id": around_id})
    except DataClientError as e:
        if e.code == FK_VIOLATION:
            raise ServiceError(409, "ไม่สามารถลบหัวข้อได้เนื่องจากมีข้อมูลใช้งานอยู่ (Foreign Key)")
        raise


async def replace_assessment(client: DataClient, around_id: int, form: AssessmentIn, clear_answers: bool) -> int:
    new_id, heads, details = build_structure_rows(form)
    if new_id != around_id:
        raise ServiceError(400, f"รอบการประเมินไม่ตรงกัน ({new_id} != {around_id})")

    if clear_answers:
        try:
            await client.delete("assessment_answer", {"around_id": around_id})
        except DataClientError as e:
            logger.error(f"Error deleting answers for round {around_id}: {e.message}")
            raise ServiceError(500, "ไม่สามารถลบคำตอบเดิมได้")

    await _delete_structure(client, around_id)
    if heads:
        await client.insert("assessment_head", heads)
    if details:
        await client.insert("assessment_detail", details)
    logger.info(f"assessment round {around_id} replaced (clear_answers={clear_answers})")
    return around_id


async def delete_assessment(client: DataClient, around_id: int) -> None:
    await _delete_structure(client, around_id)
    logger.info(f"assessment round {around_id} deleted")
