import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)

# column -> value (equality) or column -> (operator, value)
Filters = Mapping[str, Any]

_OPERATORS = {"eq", "neq", "gt", "gte", "lt", "lte", "in", "is", "not.is"}


class DataClientError(Exception):
    """Error returned by the hosted database (or the transport in front of it)"""

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


def _literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_filters(filters: Optional[Filters]) -> List[Tuple[str, str]]:
    """
    Turns a filter mapping into PostgREST query params.
    - {"around_id": 25671}                  -> around_id=eq.25671
    - {"id": ("in", [1, 2])}                -> id=in.(1,2)
    - {"text_value": ("not.is", None)}      -> text_value=not.is.null
    """
    params: List[Tuple[str, str]] = []
    for column, value in (filters or {}).items():
        if isinstance(value, tuple):
            op, operand = value
        else:
            op, operand = "eq", value
        if op not in _OPERATORS:
            raise ValueError(f"unsupported filter operator: {op}")
        if op == "in":
            operand = "(" + ",".join(_literal(v) for v in operand) + ")"
        else:
            operand = _literal(operand)
        params.append((column, f"{op}.{operand}"))
    return params


def encode_order(order: Optional[Sequence[str]]) -> Optional[str]:
    """["around_id.desc", "section1"] -> "around_id.desc,section1.asc" """
    if not order:
        return None
    parts = []
    for item in order:
        parts.append(item if "." in item else f"{item}.asc")
    return ",".join(parts)


def parse_content_range(value: Optional[str]) -> int:
    """'0-9/42' or '*/0' -> total row count"""
    if not value or "/" not in value:
        return 0
    total = value.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


class DataClient:
    """
    Async PostgREST client for the hosted database.
    - The session token (if any) rides on every request as SESSION_HEADER_NAME;
      the database resolves it to an identity and applies row-level security.
    - This class never validates the token.
    """

    def __init__(
        self,
        session_token: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.REST_URL).rstrip("/")
        key = settings.SUPABASE_ANON_KEY if api_key is None else api_key
        self.headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }
        if session_token:
            self.headers[settings.SESSION_HEADER_NAME] = session_token
        self.authenticated = bool(session_token)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=timeout or settings.DATA_TIMEOUT,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Shared request path: every failure becomes a DataClientError"""
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException:
            raise DataClientError("database request timed out")
        except httpx.HTTPError as e:
            raise DataClientError(f"database connection failed: {e}")

        if response.status_code >= 400:
            code, message = None, response.text
            try:
                body = response.json()
                if isinstance(body, dict):
                    code = body.get("code")
                    message = body.get("message") or message
            except ValueError:
                pass
            raise DataClientError(message or f"HTTP {response.status_code}", code=code,
                                  status_code=response.status_code)
        return response

    # ===============================================================
    # Remote procedures
    # ===============================================================

    async def rpc(self, fn: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._request("POST", f"/rpc/{fn}", json=params or {})
        if not response.content:
            return None
        return response.json()

    # ===============================================================
    # Table access
    # ===============================================================

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Filters] = None,
        order: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params = [("select", columns)] + encode_filters(filters)
        ordering = encode_order(order)
        if ordering:
            params.append(("order", ordering))
        if limit is not None:
            params.append(("limit", str(limit)))
        if offset:
            params.append(("offset", str(offset)))
        response = await self._request("GET", f"/{table}", params=params)
        return response.json()

    async def select_one(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Filters] = None,
        order: Optional[Sequence[str]] = None,
    ) -> Optional[Dict[str, Any]]:
        rows = await self.select(table, columns, filters, order=order, limit=1)
        return rows[0] if rows else None

    async def select_page(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Filters] = None,
        order: Optional[Sequence[str]] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Rows of one page plus the exact total (Prefer: count=exact)"""
        params = [("select", columns)] + encode_filters(filters)
        ordering = encode_order(order)
        if ordering:
            params.append(("order", ordering))
        params += [("limit", str(limit)), ("offset", str(offset))]
        response = await self._request("GET", f"/{table}", params=params,
                                       headers={"Prefer": "count=exact"})
        return response.json(), parse_content_range(response.headers.get("content-range"))

    async def count(self, table: str, filters: Optional[Filters] = None) -> int:
        params = [("select", "*")] + encode_filters(filters)
        response = await self._request("HEAD", f"/{table}", params=params,
                                       headers={"Prefer": "count=exact"})
        return parse_content_range(response.headers.get("content-range"))

    async def insert(self, table: str, rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        response = await self._request("POST", f"/{table}", json=list(rows),
                                       headers={"Prefer": "return=representation"})
        return response.json() if response.content else []

    async def update(self, table: str, values: Dict[str, Any], filters: Filters) -> List[Dict[str, Any]]:
        response = await self._request("PATCH", f"/{table}", params=encode_filters(filters), json=values,
                                       headers={"Prefer": "return=representation"})
        return response.json() if response.content else []

    async def delete(self, table: str, filters: Filters) -> None:
        await self._request("DELETE", f"/{table}", params=encode_filters(filters))

    async def aclose(self) -> None:
        await self._client.aclose()


def make_client(session_token: Optional[str] = None, **kwargs) -> DataClient:
    """Client that forwards `session_token` (when present) on every call"""
    return DataClient(session_token=session_token, **kwargs)
