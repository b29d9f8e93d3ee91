"""Collection lifecycle on the index server: list, create, reload and delete."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import httpx
import orjson

from index_feeder.config import Settings, get_settings
from index_feeder.exceptions import DataSourceError
from index_feeder.index.transport import HttpTransport


logger = logging.getLogger(__name__)


def parse_reply(body: bytes | str) -> dict[str, Any]:
    """Decode a JSON reply and raise when it carries an exception envelope.

    The server reports failures as ``{"exception": {"msg": ..., "rspCode": ...}}``
    alongside the usual ``responseHeader``.
    """
    if not body:
        return {}
    try:
        reply = orjson.loads(body)
    except orjson.JSONDecodeError as exc:
        raise DataSourceError(f"Unreadable reply from index server: {exc}") from exc
    if not isinstance(reply, dict):
        return {}

    exception = reply.get("exception")
    if isinstance(exception, dict):
        message = str(exception.get("msg") or "")
        if message:
            try:
                code = int(exception.get("rspCode"))
            except (TypeError, ValueError):
                code = None
            raise DataSourceError(f"Index exception [{code}]: {message}", code)
    return reply


class CollectionManager:
    """Administers collections through the collections API.

    Args:
        settings: Base URL and collection defaults (process settings when omitted)
        transport: HTTP transport; one is created and owned when omitted
    """

    def __init__(self, settings: Settings | None = None, transport: HttpTransport | None = None) -> None:
        self.settings = settings or get_settings()
        self._owns_transport = transport is None
        self.transport = transport or HttpTransport(self.settings)

    def _request(self, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.settings.admin_collections_url()}?{urlencode(params)}"
        try:
            body = self.transport.get(url, check_status=False)
        except httpx.HTTPError as exc:
            raise DataSourceError(f"{url}: {exc}") from exc
        return parse_reply(body)

    @staticmethod
    def _require_name(name: str | None, message: str) -> str:
        if not name or not name.strip():
            raise DataSourceError(message)
        return name.strip()

    def list(self) -> list[str]:
        reply = self._request({"action": "LIST", "omitHeader": "true", "wt": "json"})
        collections = reply.get("collections") or []
        return [str(name) for name in collections]

    def exists(self, name: str) -> bool:
        name = self._require_name(name, "Collection name must be specified.")
        return name in self.list()

    def create(
        self,
        config_set: str,
        name: str,
        shards: int | None = None,
        replication_factor: int | None = None,
    ) -> dict[str, Any]:
        """Create a collection from a named configuration set."""
        name = self._require_name(name, "Collection name must be specified.")
        config_set = self._require_name(config_set, "Configuration set name must be specified.")
        shards = max(1, shards if shards is not None else self.settings.default_shards)
        replication_factor = max(
            1, replication_factor if replication_factor is not None else self.settings.default_replication_factor
        )

        reply = self._request(
            {
                "action": "CREATE",
                "name": name,
                "collection.configName": config_set,
                "numShards": shards,
                "replicationFactor": replication_factor,
                "wt": "json",
            }
        )
        logger.info(
            "Created collection %s (config=%s, shards=%d, replicas=%d)", name, config_set, shards, replication_factor
        )
        return reply

    def reload(self, name: str) -> dict[str, Any]:
        name = self._require_name(name, "Collection name must be specified.")
        reply = self._request({"action": "RELOAD", "name": name, "wt": "json"})
        logger.info("Reloaded collection %s", name)
        return reply

    def delete(self, name: str) -> dict[str, Any]:
        name = self._require_name(name, "Collection name must be specified.")
        reply = self._request({"action": "DELETE", "name": name, "wt": "json"})
        logger.info("Deleted collection %s", name)
        return reply

    def close(self) -> None:
        if self._owns_transport:
            self.transport.close()
