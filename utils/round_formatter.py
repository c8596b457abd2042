"""
Round id helpers.

A round id is year (4 chars) + term (rest): 25681 -> year 2568, term 1.
Ids may carry either a Gregorian or a Buddhist-era year; display is always BE.
"""

from typing import Tuple, Union

RoundId = Union[str, int]

BUDDHIST_ERA_OFFSET = 543
# anything at or above this is already a Buddhist-era year
_BUDDHIST_YEAR_FLOOR = 2400

NO_ROUND_LABEL = "ไม่ระบุรอบ"


def parse_round_id(round_id: RoundId) -> Tuple[str, str]:
    text = str(round_id)
    if len(text) >= 5:
        return text[:4], text[4:]
    return text, ""


def to_buddhist_year(year: Union[str, int]) -> str:
    try:
        value = int(year)
    except (TypeError, ValueError):
        return str(year)
    if value < _BUDDHIST_YEAR_FLOOR:
        value += BUDDHIST_ERA_OFFSET
    return str(value)


def get_term_label(term: Union[str, int]) -> str:
    text = str(term).strip()
    if not text:
        return ""
    if text.isdigit():
        text = str(int(text))
    if text == "1":
        return "ภาคเรียนที่ 1"
    if text == "2":
        return "ภาคเรียนที่ 2"
    if text == "3":
        return "ภาคเรียนฤดูร้อน"
    return f"ภาคเรียนที่ {text}"


def format_round_id(round_id: RoundId) -> str:
    if not round_id:
        return NO_ROUND_LABEL
    year, term = parse_round_id(round_id)
    term_label = get_term_label(term)
    year = to_buddhist_year(year)
    if term_label:
        return f"ปีการศึกษา {year} | {term_label}"
    return f"ปีการศึกษา {year}"


def build_round_id(academic_year: Union[str, int], term: Union[str, int]) -> int:
    """2568 + 1 -> 25681"""
    return int(f"{int(academic_year)}{int(term)}")
