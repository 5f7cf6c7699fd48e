"""
HTTP client for the admin panel.

Keeps the session token (optionally on disk so it survives restarts), adds it
to each request as it is built, logs the session out on a 401 and caches the
public settings until a write publishes a SettingsUpdated event.
"""

import copy
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000/api"

NETWORK_ERROR_MESSAGE = "Unable to connect to the server. Please check your internet connection."
NOT_FOUND_MESSAGE = "Resource not found. The requested item may have been deleted or doesn't exist."
SERVER_ERROR_MESSAGE = "Server is currently unavailable. Please try again in a few minutes."
GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again."

# a 401 from these paths does not end the session
SESSION_EXEMPT_PATHS = ("/settings/",)

E = TypeVar("E")


class ApiError(Exception):
    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass(frozen=True)
class SettingsUpdated:
    settings_type: str
    timestamp: float = field(default_factory=time.time)


class EventBus(Generic[E]):
    """Minimal publish/subscribe hub."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: List[Callable[[E], None]] = []

    def subscribe(self, callback: Callable[[E], None]) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: E) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(event)


class TokenStore:
    def __init__(self, path: Optional[str] = None):
        self._lock = threading.Lock()
        self._path = Path(path) if path else None
        self._token: Optional[str] = None
        self._user: Optional[Dict[str, Any]] = None
        self._load()

    def _load(self):
        if not self._path or not self._path.exists():
            return
        try:
            saved = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self._path, e)
            return
        self._token = saved.get("token")
        self._user = saved.get("user")

    def _persist(self):
        if not self._path:
            return
        if self._token is None:
            self._path.unlink(missing_ok=True)
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps({"token": self._token, "user": self._user}), encoding="utf-8")

    @property
    def token(self) -> Optional[str]:
        with self._lock:
            return self._token

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return dict(self._user) if self._user else None

    def save(self, token: str, user: Optional[Dict[str, Any]] = None) -> None:
        with self._lock:
            self._token = token
            self._user = user
            self._persist()

    def clear(self) -> None:
        with self._lock:
            self._token = None
            self._user = None
            self._persist()


class SettingsCache:
    def __init__(self, bus: Optional[EventBus] = None, ttl: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self.ttl = ttl
        self._clock = clock
        self._unsubscribe = bus.subscribe(self._on_event) if bus is not None else None

    def _on_event(self, event):
        if isinstance(event, SettingsUpdated):
            self.invalidate(event.settings_type)

    def get(self, settings_type: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(settings_type)
            if entry is None:
                return None
            fetched_at, data = entry
            if self._clock() - fetched_at > self.ttl:
                del self._entries[settings_type]
                return None
            return copy.deepcopy(data)

    def put(self, settings_type: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._entries[settings_type] = (self._clock(), data)

    def invalidate(self, settings_type: Optional[str] = None) -> None:
        with self._lock:
            if settings_type is None:
                self._entries.clear()
            else:
                self._entries.pop(settings_type, None)

    def close(self):
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None


def _is_session_exempt(path: str) -> bool:
    return any(marker in path for marker in SESSION_EXEMPT_PATHS)


def _unwrap(body: Any) -> Any:
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


def _error_message(response: httpx.Response) -> str:
    if response.status_code >= 500:
        return SERVER_ERROR_MESSAGE
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str) and detail:
            return detail
    if response.status_code == 404:
        return NOT_FOUND_MESSAGE
    return GENERIC_ERROR_MESSAGE


class StorefrontClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        store: Optional[TokenStore] = None,
        http: Optional[httpx.Client] = None,
        bus: Optional[EventBus] = None,
        cache: Optional[SettingsCache] = None,
        on_session_expired: Optional[Callable[[], None]] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.store = store or TokenStore()
        self.bus = bus or EventBus()
        self.cache = cache or SettingsCache(self.bus)
        self.on_session_expired = on_session_expired
        self._owns_http = http is None
        self.http = http or httpx.Client(timeout=timeout, headers={"Content-Type": "application/json"})

    def close(self):
        self.cache.close()
        if self._owns_http:
            self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _request(self, method: str, path: str, payload: Any = None) -> Any:
        token = self.store.token
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = self.http.request(method, f"{self.base_url}{path}", json=payload, headers=headers)
        except httpx.TransportError as e:
            logger.error("Network error on %s %s: %s", method, path, e)
            raise ApiError(None, NETWORK_ERROR_MESSAGE) from e

        if response.status_code == 401 and not _is_session_exempt(path):
            logger.warning("Session expired on %s %s, logging out", method, path)
            self.store.clear()
            if self.on_session_expired:
                self.on_session_expired()
        if response.is_error:
            logger.error("API error %s on %s %s: %s", response.status_code, method, path, response.text)
            raise ApiError(response.status_code, _error_message(response))
        return response.json()

    # Auth
    def login(self, email: str, password: str) -> Dict[str, Any]:
        body = self._request("POST", "/users/login", {"email": email, "password": password})
        role = body.get("role")
        user = {
            "id": body.get("id"),
            "name": body.get("name"),
            "email": body.get("email"),
            "role": role,
            "is_admin": role in ("admin", "superadmin", "super_admin"),
        }
        self.store.save(body["token"], user)
        return body

    def logout(self) -> None:
        self.store.clear()

    @property
    def is_authenticated(self) -> bool:
        return self.store.token is not None

    def profile(self) -> Dict[str, Any]:
        return self._request("GET", "/users/profile")

    # Categories
    def get_categories(self) -> List[Dict[str, Any]]:
        return _unwrap(self._request("GET", "/categories"))

    def get_category(self, category_id: str) -> Dict[str, Any]:
        return _unwrap(self._request("GET", f"/categories/{category_id}"))

    def create_category(self, **fields) -> Dict[str, Any]:
        return _unwrap(self._request("POST", "/categories", fields))

    def update_category(self, category_id: str, **fields) -> Dict[str, Any]:
        return _unwrap(self._request("PUT", f"/categories/{category_id}", fields))

    def delete_category(self, category_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/categories/{category_id}")

    # Products
    def get_products(self) -> List[Dict[str, Any]]:
        return _unwrap(self._request("GET", "/products"))

    def get_products_by_category(self, category_id: str) -> List[Dict[str, Any]]:
        return _unwrap(self._request("GET", f"/products/category/{category_id}"))

    def get_product(self, product_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/products/{product_id}")

    def create_product(self, **fields) -> Dict[str, Any]:
        return self._request("POST", "/products", fields)

    def update_product(self, product_id: str, **fields) -> Dict[str, Any]:
        return self._request("PUT", f"/products/{product_id}", fields)

    def delete_product(self, product_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/products/{product_id}")

    # Settings
    def get_settings(self, settings_type: str) -> Dict[str, Any]:
        cached = self.cache.get(settings_type)
        if cached is not None:
            return cached
        data = self._request("GET", f"/settings/{settings_type}")
        self.cache.put(settings_type, data)
        return data

    def update_settings(self, settings_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self._request("PUT", f"/settings/{settings_type}", data)
        self.bus.publish(SettingsUpdated(settings_type))
        return result

    def get_contact_settings(self) -> Dict[str, Any]:
        return self.get_settings("contact")

    def get_social_settings(self) -> Dict[str, Any]:
        return self.get_settings("social")

    def update_contact_settings(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.update_settings("contact", data)

    def update_social_settings(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.update_settings("social", data)
