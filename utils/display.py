from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from config.settings import settings
from utils.round_formatter import BUDDHIST_ERA_OFFSET, format_round_id

LOCAL_TZ = timezone(timedelta(hours=settings.TZ_OFFSET_HOURS))

STATUS_ACTIVE = "กำลังดำเนินการ"
STATUS_EXPIRED = "หมดเวลา"
STATUS_NOT_OPEN = "ยังไม่เปิด"


def now_local() -> datetime:
    return datetime.now(LOCAL_TZ)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO-ish string (or datetime) from the database -> aware datetime"""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip().replace(" ", "T", 1)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=LOCAL_TZ)
    return parsed


def format_thai_date(value: Any) -> str:
    """dd/mm/<Buddhist year>; empty string for missing input"""
    ts = parse_timestamp(value)
    if ts is None:
        return ""
    ts = ts.astimezone(LOCAL_TZ)
    return f"{ts.day:02d}/{ts.month:02d}/{ts.year + BUDDHIST_ERA_OFFSET}"


def round_status(start: Any, end: Any, now: Optional[datetime] = None) -> Dict[str, Any]:
    """active iff now <= end; before start the round is not open yet"""
    now = now or now_local()
    start_ts, end_ts = parse_timestamp(start), parse_timestamp(end)
    if start_ts is not None and now < start_ts:
        return {"is_active": False, "label": STATUS_NOT_OPEN}
    is_active = end_ts is None or now <= end_ts
    return {"is_active": is_active, "label": STATUS_ACTIVE if is_active else STATUS_EXPIRED}


def is_open(start: Any, end: Any, now: Optional[datetime] = None) -> bool:
    """start <= now <= end (missing bounds are open)"""
    now = now or now_local()
    start_ts, end_ts = parse_timestamp(start), parse_timestamp(end)
    if start_ts is not None and now < start_ts:
        return False
    return end_ts is None or now <= end_ts


def join_names(names: Iterable[Optional[str]], empty: str = "-") -> str:
    cleaned = [n for n in names if n]
    return ", ".join(cleaned) if cleaned else empty


def unique_rounds(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """First row per around_id, input order kept"""
    seen: Dict[Any, Dict[str, Any]] = {}
    for row in rows:
        seen.setdefault(row.get("around_id"), row)
    return list(seen.values())


def round_card(row: Dict[str, Any], now: Optional[datetime] = None, check_start: bool = True) -> Dict[str, Any]:
    """around_id/start_date/end_date row -> display card"""
    start = row.get("start_date") if check_start else None
    status = round_status(start, row.get("end_date"), now)
    return {
        "around_id": row.get("around_id"),
        "label": format_round_id(row.get("around_id")),
        "start_date": row.get("start_date"),
        "end_date": row.get("end_date"),
        "period": f"{format_thai_date(row.get('start_date'))} - {format_thai_date(row.get('end_date'))}",
        "is_active": status["is_active"],
        "status": status["label"],
    }


def ratio_percent(part: int, total: int) -> int:
    return round(part * 100 / total) if total > 0 else 0


def average(total: float, count: int) -> float:
    return round(total / count, 2) if count > 0 else 0.0
