import hmac
from collections.abc import Callable
from threading import Lock

from ionos_provider.clients.ionos import IonosClient
from ionos_provider.config import get_settings


ClientFactory = Callable[[str, str], IonosClient]


def _default_factory(user: str, password: str) -> IonosClient:
    settings = get_settings()
    return IonosClient(
        base_url=settings.api_url,
        user=user,
        password=password,
        timeout=settings.http_timeout_sec,
    )


class ClientRegistry:
    """Per-user cache of configured cloud clients, safe for concurrent requests.

    A cached client is only handed out to callers presenting the password it
    was built with; any other password gets a freshly built client.
    """

    def __init__(self, factory: ClientFactory | None = None) -> None:
        self._lock = Lock()
        self._clients: dict[str, tuple[str, IonosClient]] = {}
        self._factory = factory or _default_factory

    def get_client(self, user: str, password: str) -> IonosClient:
        with self._lock:
            entry = self._clients.get(user)
            if entry is not None and hmac.compare_digest(
                entry[0].encode("utf-8"), password.encode("utf-8")
            ):
                return entry[1]
            client = self._factory(user, password)
            self._clients[user] = (password, client)
            return client

    def set_client(
        self, user: str, client: IonosClient | None, password: str = ""
    ) -> None:
        with self._lock:
            if client is None:
                self._clients.pop(user, None)
            else:
                self._clients[user] = (password, client)

    def clear(self, user: str | None = None) -> None:
        with self._lock:
            if user is None:
                self._clients.clear()
            else:
                self._clients.pop(user, None)

    def users(self) -> list[str]:
        with self._lock:
            return sorted(self._clients)
