# facetstudio/backend.py
# Minimal PocketBase REST client (records, auth, health) on top of requests.

import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import jwt
import requests

from facetstudio.errors import ClientResponseError

log = logging.getLogger(__name__)


# -----------------------------
# FILTER STRINGS
# -----------------------------
def quote(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        value = value.strftime("%Y-%m-%d %H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


_PLACEHOLDER = re.compile(r"\{:(\w+)\}")


def build_filter(expr: str, **params: Any) -> str:
    """Fill ``{:name}`` placeholders with quoted literals, e.g.
    ``build_filter("user = {:uid}", uid=user.id)``."""

    def _sub(m):
        key = m.group(1)
        if key not in params:
            raise KeyError(f"missing filter param: {key}")
        return quote(params[key])

    return _PLACEHOLDER.sub(_sub, expr)


def any_of(field: str, values: Iterable[Any]) -> str:
    return " || ".join(f"{field} = {quote(v)}" for v in values if v)


# -----------------------------
# AUTH STORE
# -----------------------------
def _jwt_payload(token: str) -> Dict[str, Any]:
    # the server checks the signature; only the claims are read here
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return {}


class AuthStore:
    def __init__(self, token: str = "", record: Optional[Dict[str, Any]] = None):
        self.token = token
        self.record = record

    @property
    def model(self) -> Optional[Dict[str, Any]]:
        return self.record

    @property
    def is_valid(self) -> bool:
        if not self.token:
            return False
        exp = _jwt_payload(self.token).get("exp")
        return isinstance(exp, (int, float)) and exp > time.time()

    def save(self, token: str, record: Optional[Dict[str, Any]]):
        self.token = token
        self.record = record

    def clear(self):
        self.token = ""
        self.record = None


# -----------------------------
# CLIENT
# -----------------------------
class RecordService:
    def __init__(self, client: "PocketBase", name: str):
        self.client = client
        self.name = name

    @property
    def _base(self) -> str:
        return f"/api/collections/{self.name}"

    def get_list(self, page: int = 1, per_page: int = 30, filter: str = "", sort: str = "") -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page, "perPage": per_page}
        if filter:
            params["filter"] = filter
        if sort:
            params["sort"] = sort
        return self.client.send("GET", f"{self._base}/records", params=params)

    def get_full_list(self, filter: str = "", sort: str = "", batch: int = 500) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            res = self.get_list(page=page, per_page=batch, filter=filter, sort=sort)
            chunk = res.get("items") or []
            items.extend(chunk)
            total_pages = int(res.get("totalPages") or 0)
            if not chunk or page >= total_pages:
                return items
            page += 1

    def get_one(self, record_id: str) -> Dict[str, Any]:
        return self.client.send("GET", f"{self._base}/records/{record_id}")

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.send("POST", f"{self._base}/records", json=data)

    def update(self, record_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.send("PATCH", f"{self._base}/records/{record_id}", json=data)

    def delete(self, record_id: str) -> bool:
        self.client.send("DELETE", f"{self._base}/records/{record_id}")
        return True

    def auth_with_password(self, identity: str, password: str) -> Dict[str, Any]:
        data = self.client.send(
            "POST", f"{self._base}/auth-with-password",
            json={"identity": identity, "password": password},
        )
        self.client.auth_store.save(data.get("token", ""), data.get("record"))
        return data

    def request_verification(self, email: str) -> bool:
        self.client.send("POST", f"{self._base}/request-verification", json={"email": email})
        return True


class PocketBase:
    def __init__(
        self,
        base_url: str,
        auth_store: Optional[AuthStore] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.auth_store = auth_store or AuthStore()
        self.timeout = timeout
        self.session = session or requests.Session()

    def collection(self, name: str) -> RecordService:
        return RecordService(self, name)

    def send(self, method: str, path: str, params=None, json=None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {}
        if self.auth_store.token:
            headers["Authorization"] = self.auth_store.token

        log.debug("%s %s params=%s", method, url, params)
        resp = self.session.request(
            method, url, params=params, json=json, headers=headers, timeout=self.timeout,
        )

        if resp.status_code == 204 or not resp.content:
            data: Dict[str, Any] = {}
        else:
            try:
                data = resp.json()
            except ValueError:
                data = {"message": resp.text[:200]}

        if resp.status_code >= 400:
            raise ClientResponseError(resp.status_code, data if isinstance(data, dict) else {}, url)
        return data

    def health(self) -> bool:
        try:
            self.send("GET", "/api/health")
            return True
        except (requests.RequestException, ClientResponseError) as e:
            log.error("PocketBase health check failed: %s", e)
            return False
