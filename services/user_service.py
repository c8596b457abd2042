import logging
from typing import Any, Dict

from database.data_client import DataClient
from schemas.common import Pagination, make_meta
from schemas.users import READ_ONLY_COLUMNS, USER_TABLE_LABELS, USER_TABLES
from services.errors import ServiceError

logger = logging.getLogger(__name__)


def _check_table(table: str) -> str:
    if table not in USER_TABLES:
        raise ServiceError(404, f"ไม่พบตารางผู้ใช้ '{table}'")
    return table


def _writable(table: str, values: Dict[str, Any]) -> Dict[str, Any]:
    allowed = set(USER_TABLES[table])
    return {k: v for k, v in values.items() if k in allowed and k not in READ_ONLY_COLUMNS}


async def list_users(client: DataClient, table: str, paging: Pagination) -> Dict[str, Any]:
    _check_table(table)
    rows, total = await client.select_page(table, "*", order=["id"], offset=paging.offset, limit=paging.size)
    return {
        "table": table,
        "label": USER_TABLE_LABELS[table],
        "columns": USER_TABLES[table],
        "items": rows,
        "meta": make_meta(total, paging.page, paging.size).model_dump(),
    }


async def create_user(client: DataClient, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
    _check_table(table)
    record = _writable(table, values)
    if not record:
        raise ServiceError(400, "ไม่มีข้อมูลสำหรับบันทึก")
    created = await client.insert(table, [record])
    logger.info(f"{table}: row created")
    return created[0] if created else record


async def update_user(client: DataClient, table: str, user_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
    _check_table(table)
    changes = _writable(table, values)
    if not changes:
        raise ServiceError(400, "ไม่มีข้อมูลสำหรับแก้ไข")
    updated = await client.update(table, changes, {"id": user_id})
    if not updated:
        raise ServiceError(404, "ไม่พบข้อมูลที่ต้องการแก้ไข")
    logger.info(f"{table}: row {user_id} updated")
    return updated[0]


async def delete_user(client: DataClient, table: str, user_id: int) -> None:
    _check_table(table)
    await client.delete(table, {"id": user_id})
    logger.info(f"{table}: row {user_id} deleted")
