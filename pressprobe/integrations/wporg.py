"""WordPress.org API client - latest released versions for outdated checks."""

import asyncio
import logging
from dataclasses import replace

import httpx

from pressprobe.extract.versions import is_older, is_valid_version
from pressprobe.models import EntityKind, EntitySnapshot

logger = logging.getLogger(__name__)

PLUGIN_INFO_URL = "https://api.wordpress.org/plugins/info/1.2/"
THEME_INFO_URL = "https://api.wordpress.org/themes/info/1.2/"


class WordPressOrgClient:
    """Look up the latest released version of plugins and themes.

    Results, including "not found", are cached per slug for the lifetime of
    the client.
    """

    def __init__(self, client: httpx.AsyncClient, timeout: float = 5.0, concurrency: int = 4):
        self.client = client
        self.timeout = timeout
        self.concurrency = concurrency
        self._cache: dict[tuple[EntityKind, str], str | None] = {}

    async def latest_version(self, slug: str, kind: EntityKind = EntityKind.PLUGIN) -> str | None:
        """Latest version from the directory, or None if unknown."""
        key = (kind, slug)
        if key in self._cache:
            return self._cache[key]

        if kind == EntityKind.THEME:
            url = THEME_INFO_URL
            params = {"action": "theme_information", "request[slug]": slug}
        else:
            url = PLUGIN_INFO_URL
            params = {"action": "plugin_information", "request[slug]": slug}

        version = None
        try:
            response = await self.client.get(url, params=params, timeout=self.timeout)
            if response.status_code == 200:
                data = response.json()
                if isinstance(data, dict) and not data.get("error"):
                    value = data.get("version")
                    if isinstance(value, str) and is_valid_version(value):
                        version = value
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("WordPress.org lookup for %s failed: %s", slug, e)

        self._cache[key] = version
        return version

    async def annotate(self, snapshot: EntitySnapshot) -> EntitySnapshot:
        """Return the snapshot with ``latest_version`` and ``is_outdated`` filled in."""
        if snapshot.kind not in (EntityKind.PLUGIN, EntityKind.THEME):
            return snapshot

        latest = await self.latest_version(snapshot.identity, snapshot.kind)
        if latest is None:
            return snapshot

        outdated = is_older(snapshot.resolved_version, latest) if snapshot.resolved_version else None
        return replace(snapshot, latest_version=latest, is_outdated=outdated)

    async def annotate_all(self, snapshots: tuple[EntitySnapshot, ...]) -> tuple[EntitySnapshot, ...]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(snapshot: EntitySnapshot) -> EntitySnapshot:
            async with semaphore:
                return await self.annotate(snapshot)

        return tuple(await asyncio.gather(*(bounded(s) for s in snapshots)))
