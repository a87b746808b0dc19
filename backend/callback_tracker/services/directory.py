"""Read-through cache of enabled Azure AD users, used for assignee choices."""
import logging
import threading
import time
import unicodedata
from typing import Any, Callable, NamedTuple, Optional

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from callback_tracker.core.config import Settings
from callback_tracker.core.errors import UpstreamError
from callback_tracker.metrics.prometheus import directory_refresh_total

logger = logging.getLogger(__name__)

GRAPH_USERS_URL = "https://graph.microsoft.com/v1.0/users"
GRAPH_USERS_PARAMS = {
    "$select": "id,displayName,mail,userPrincipalName,accountEnabled",
    "$orderby": "displayName",
    "$top": "999",
}


class DirectoryUser(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    display_name: str
    email: str
    user_principal_name: str


class _Snapshot(NamedTuple):
    users: tuple[DirectoryUser, ...]
    expires_at: float


def collation_key(name: str) -> tuple[str, str]:
    """Accent- and case-insensitive ordering key; the raw name breaks ties."""
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), name


def normalize_users(raw: list[dict[str, Any]]) -> list[DirectoryUser]:
    """Drop disabled accounts, fill blank names/mails from the UPN, sort by name."""
    users: list[DirectoryUser] = []
    for u in raw:
        if u.get("accountEnabled") is False:
            continue
        if not u.get("id"):
            logger.warning("skipping directory record without id: %s", u.get("userPrincipalName"))
            continue
        upn = u.get("userPrincipalName") or ""
        display_name = (u.get("displayName") or "").strip() or upn
        email = (u.get("mail") or "").strip() or upn
        users.append(
            DirectoryUser(
                id=str(u["id"]),
                display_name=display_name,
                email=email,
                user_principal_name=upn,
            )
        )
    users.sort(key=lambda x: collation_key(x.display_name))
    return users


class DirectoryCache:
    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        scope: str,
        ttl_seconds: float = 300.0,
        timeout: float = 10.0,
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.token_url = f"https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.ttl_seconds = ttl_seconds

        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot: Optional[_Snapshot] = None

    @classmethod
    def from_settings(cls, s: Settings, **kwargs) -> "DirectoryCache":
        return cls(
            tenant_id=s.azure_ad_tenant_id,
            client_id=s.azure_ad_client_id,
            client_secret=s.azure_ad_client_secret,
            scope=s.azure_ad_graph_scope,
            ttl_seconds=s.directory_cache_ttl_seconds,
            timeout=s.upstream_timeout_seconds,
            **kwargs,
        )

    def _fresh(self) -> Optional[_Snapshot]:
        snap = self._snapshot
        if snap is not None and snap.expires_at > self._clock():
            return snap
        return None

    def list_users(self) -> list[DirectoryUser]:
        snap = self._fresh()
        if snap is None:
            with self._lock:
                # another request may have refreshed while we waited
                snap = self._fresh()
                if snap is None:
                    snap = self._refresh_locked()
        return list(snap.users)

    def refresh(self) -> list[DirectoryUser]:
        with self._lock:
            return list(self._refresh_locked().users)

    def invalidate(self) -> None:
        self._snapshot = None

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def _refresh_locked(self) -> _Snapshot:
        try:
            token = self._fetch_access_token()
            raw = self._fetch_users(token)
        except UpstreamError:
            directory_refresh_total.labels(outcome="error").inc()
            raise

        users = tuple(normalize_users(raw))
        snap = _Snapshot(users=users, expires_at=self._clock() + self.ttl_seconds)
        self._snapshot = snap
        directory_refresh_total.labels(outcome="ok").inc()
        logger.info("directory cache refreshed with %d users", len(users))
        return snap

    def _fetch_access_token(self) -> str:
        try:
            r = self._http.post(
                self.token_url,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "client_credentials",
                    "scope": self.scope,
                },
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Failed to fetch Graph token: {e}") from e

        if r.status_code >= 400:
            raise UpstreamError("Failed to fetch Graph token", status_code=r.status_code, body=r.text)

        try:
            token = r.json().get("access_token")
        except ValueError as e:
            raise UpstreamError("Graph token response is not JSON", status_code=r.status_code, body=r.text) from e
        if not token:
            raise UpstreamError("Graph token response missing access_token", status_code=r.status_code)
        return token

    def _fetch_users(self, token: str) -> list[dict[str, Any]]:
        try:
            r = self._http.get(
                GRAPH_USERS_URL,
                params=GRAPH_USERS_PARAMS,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Failed to fetch Graph users: {e}") from e

        if r.status_code >= 400:
            raise UpstreamError("Failed to fetch Graph users", status_code=r.status_code, body=r.text)

        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamError("Graph users response is not JSON", status_code=r.status_code, body=r.text) from e
        return data.get("value") or []
