"""Supabase REST client: PostgREST queries, RPCs, object storage and auth.

Supabase exposes the managed Postgres database through PostgREST
(https://postgrest.org). Every relation is reachable at
``/rest/v1/<table>`` and filters are encoded as query parameters
(``?status=eq.active&order=created_at.desc``). Stored procedures live under
``/rest/v1/rpc/<name>``, files under ``/storage/v1/object/<bucket>`` and
sessions under ``/auth/v1``.

Auth: ``apikey`` header with the anon key plus ``Authorization: Bearer``
with the user's access token (row-level security is evaluated server-side).
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from viblo.config import settings
from viblo.errors import NotFoundError, RemoteCallError

logger = logging.getLogger(__name__)

# PostgREST error code for ".single()" when the row count is not exactly one.
NO_SINGLE_ROW = "PGRST116"


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "value"):  # str Enums
        return str(value.value)
    return str(value)


def _error_message(resp: httpx.Response) -> tuple[str, str | None]:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}", None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or body.get("msg")
        return str(message or f"HTTP {resp.status_code}"), body.get("code")
    return f"HTTP {resp.status_code}", None


class TableQuery:
    """Fluent PostgREST request builder, mirroring the supabase-js chain.

    ``SupabaseService.table("campaigns").select("*").eq("id", cid).single()``
    builds the request; ``await query.execute()`` sends it.
    """

    def __init__(self, table: str, access_token: str | None = None) -> None:
        self.table = table
        self._access_token = access_token
        self._method = "GET"
        self._params: list[tuple[str, str]] = []
        self._body: Any = None
        self._prefer: list[str] = []
        self._single = False

    # ── Reads ────────────────────────────────────────────────────

    def select(self, columns: str = "*") -> TableQuery:
        self._params.append(("select", " ".join(columns.split())))
        return self

    def eq(self, column: str, value: Any) -> TableQuery:
        if value is None:
            self._params.append((column, "is.null"))
        else:
            self._params.append((column, f"eq.{_literal(value)}"))
        return self

    def neq(self, column: str, value: Any) -> TableQuery:
        self._params.append((column, f"neq.{_literal(value)}"))
        return self

    def in_(self, column: str, values: list[Any]) -> TableQuery:
        joined = ",".join(f'"{_literal(v)}"' for v in values)
        self._params.append((column, f"in.({joined})"))
        return self

    def order(self, column: str, desc: bool = False) -> TableQuery:
        self._params.append(("order", f"{column}.{'desc' if desc else 'asc'}"))
        return self

    def limit(self, count: int) -> TableQuery:
        self._params.append(("limit", str(count)))
        return self

    def range(self, start: int, end: int) -> TableQuery:
        """Inclusive row window, like supabase-js ``.range(from, to)``."""
        self._params.append(("offset", str(start)))
        self._params.append(("limit", str(end - start + 1)))
        return self

    def single(self) -> TableQuery:
        self._single = True
        return self

    # ── Writes ───────────────────────────────────────────────────

    def insert(self, rows: dict[str, Any] | list[dict[str, Any]]) -> TableQuery:
        self._method = "POST"
        self._body = rows
        self._prefer.append("return=representation")
        return self

    def upsert(self, rows: dict[str, Any] | list[dict[str, Any]]) -> TableQuery:
        self._method = "POST"
        self._body = rows
        self._prefer.extend(["resolution=merge-duplicates", "return=representation"])
        return self

    def update(self, values: dict[str, Any]) -> TableQuery:
        self._method = "PATCH"
        self._body = values
        self._prefer.append("return=representation")
        return self

    def delete(self) -> TableQuery:
        self._method = "DELETE"
        self._prefer.append("return=minimal")
        return self

    # ── Execution ────────────────────────────────────────────────

    @property
    def params(self) -> list[tuple[str, str]]:
        return list(self._params)

    def _request_headers(self) -> dict[str, str]:
        headers = SupabaseService._headers(self._access_token)
        if self._prefer:
            headers["Prefer"] = ",".join(self._prefer)
        if self._single:
            headers["Accept"] = "application/vnd.pgrst.object+json"
        return headers

    async def execute(self) -> Any:
        """Send the request. Returns decoded JSON (a list, or a dict for single())."""
        try:
            async with SupabaseService._client() as client:
                resp = await client.request(
                    self._method,
                    f"/rest/v1/{self.table}",
                    params=self._params,
                    json=self._body,
                    headers=self._request_headers(),
                )
        except httpx.HTTPError as e:
            logger.error("Supabase %s %s failed: %s", self._method, self.table, e)
            raise RemoteCallError(str(e), endpoint=self.table) from e

        if resp.status_code >= 400:
            message, code = _error_message(resp)
            if code == NO_SINGLE_ROW:
                raise NotFoundError(self.table)
            logger.error(
                "Supabase %s %s returned %d: %s",
                self._method, self.table, resp.status_code, message,
            )
            raise RemoteCallError(message, status_code=resp.status_code, endpoint=self.table)

        if not resp.content:
            return None
        return resp.json()


class SupabaseService:
    """Wraps the Supabase REST, storage and auth endpoints."""

    BASE_URL = settings.supabase_url
    # Overridable transport (tests plug an ``httpx.MockTransport`` in here).
    transport: httpx.AsyncBaseTransport | None = None

    @classmethod
    def _headers(cls, access_token: str | None = None) -> dict[str, str]:
        return {
            "apikey": settings.supabase_anon_key,
            "Authorization": f"Bearer {access_token or settings.supabase_anon_key}",
        }

    @classmethod
    def _client(cls) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=cls.BASE_URL,
            timeout=settings.http_timeout_seconds,
            transport=cls.transport,
        )

    @classmethod
    def table(cls, name: str, access_token: str | None = None) -> TableQuery:
        return TableQuery(name, access_token)

    # ── Stored procedures ────────────────────────────────────────

    @classmethod
    async def rpc(
        cls,
        function: str,
        params: dict[str, Any] | None = None,
        access_token: str | None = None,
        order: tuple[str, bool] | None = None,
        row_range: tuple[int, int] | None = None,
    ) -> Any:
        """Call ``/rest/v1/rpc/<function>``; ``order`` is ``(column, desc)``."""
        query: list[tuple[str, str]] = []
        if order:
            column, desc = order
            query.append(("order", f"{column}.{'desc' if desc else 'asc'}"))
        if row_range:
            start, end = row_range
            query.extend([("offset", str(start)), ("limit", str(end - start + 1))])

        try:
            async with cls._client() as client:
                resp = await client.post(
                    f"/rest/v1/rpc/{function}",
                    params=query,
                    json=params or {},
                    headers=cls._headers(access_token),
                )
        except httpx.HTTPError as e:
            logger.error("Supabase rpc %s failed: %s", function, e)
            raise RemoteCallError(str(e), endpoint=function) from e

        if resp.status_code >= 400:
            message, _ = _error_message(resp)
            logger.error("Supabase rpc %s returned %d: %s", function, resp.status_code, message)
            raise RemoteCallError(message, status_code=resp.status_code, endpoint=function)
        return resp.json() if resp.content else None

    # ── Storage ──────────────────────────────────────────────────

    @classmethod
    async def upload(
        cls,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        access_token: str | None = None,
        upsert: bool = True,
    ) -> str:
        """Upload an opaque byte buffer and return its public URL."""
        headers = cls._headers(access_token)
        headers["Content-Type"] = content_type
        headers["x-upsert"] = "true" if upsert else "false"

        endpoint = f"storage:{bucket}"
        try:
            async with cls._client() as client:
                resp = await client.post(
                    f"/storage/v1/object/{bucket}/{path}",
                    content=content,
                    headers=headers,
                )
        except httpx.HTTPError as e:
            logger.error("Upload to %s/%s failed: %s", bucket, path, e)
            raise RemoteCallError(str(e), endpoint=endpoint) from e

        if resp.status_code >= 400:
            message, _ = _error_message(resp)
            logger.error("Upload to %s/%s returned %d: %s", bucket, path, resp.status_code, message)
            raise RemoteCallError(message, status_code=resp.status_code, endpoint=endpoint)

        logger.info("Uploaded %d bytes to %s/%s", len(content), bucket, path)
        return cls.public_url(bucket, path)

    @classmethod
    def public_url(cls, bucket: str, path: str) -> str:
        return f"{cls.BASE_URL}/storage/v1/object/public/{bucket}/{path}"

    # ── Auth ─────────────────────────────────────────────────────

    @classmethod
    async def _auth_call(
        cls,
        method: str,
        path: str,
        access_token: str | None = None,
        **kwargs: Any,
    ) -> Any:
        try:
            async with cls._client() as client:
                resp = await client.request(
                    method,
                    f"/auth/v1/{path}",
                    headers=cls._headers(access_token),
                    **kwargs,
                )
        except httpx.HTTPError as e:
            logger.error("Supabase auth %s failed: %s", path, e)
            raise RemoteCallError(str(e), endpoint=f"auth:{path}") from e

        if resp.status_code >= 400:
            message, _ = _error_message(resp)
            logger.error("Supabase auth %s returned %d: %s", path, resp.status_code, message)
            raise RemoteCallError(message, status_code=resp.status_code, endpoint=f"auth:{path}")
        return resp.json() if resp.content else None

    @classmethod
    async def sign_in_with_password(cls, email: str, password: str) -> dict[str, Any]:
        """Password grant. Returns ``access_token``, ``refresh_token`` and ``user``."""
        return await cls._auth_call(
            "POST",
            "token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )

    @classmethod
    async def get_user(cls, access_token: str) -> dict[str, Any]:
        return await cls._auth_call("GET", "user", access_token=access_token)

    @classmethod
    async def sign_out(cls, access_token: str) -> None:
        await cls._auth_call("POST", "logout", access_token=access_token)

    @classmethod
    async def sign_up(
        cls, email: str, password: str, redirect_to: str | None = None
    ) -> dict[str, Any]:
        """Create an email/password user.

        With email confirmation on, the response carries the user but no
        ``access_token``; the session starts once the link is followed.
        """
        params = {"redirect_to": redirect_to} if redirect_to else None
        return await cls._auth_call(
            "POST",
            "signup",
            params=params,
            json={"email": email, "password": password},
        )

    @classmethod
    async def recover(cls, email: str, redirect_to: str | None = None) -> None:
        """Send the password reset email; its link opens ``redirect_to``."""
        params = {"redirect_to": redirect_to} if redirect_to else None
        await cls._auth_call("POST", "recover", params=params, json={"email": email})

    @classmethod
    async def update_user(cls, access_token: str, values: dict[str, Any]) -> dict[str, Any]:
        return await cls._auth_call("PUT", "user", access_token=access_token, json=values)
