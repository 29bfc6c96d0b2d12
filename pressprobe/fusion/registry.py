"""Identity registry - map free-text names and aliases to canonical slugs."""

import re

from pressprobe.extract.patterns import KNOWN_PLUGINS, PLUGIN_ALIASES
from pressprobe.models import EntityKind

_SLUG_SHAPE_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_SLUG_COLLAPSE_RE = re.compile(r"[^a-z0-9_-]+")
_VALID_IDENTITY_RE = re.compile(r"^[A-Za-z0-9_-]{2,}$")


def slugify(name: str) -> str:
    """Synthesize a slug: lower-case, runs of other characters collapsed to "-"."""
    return _SLUG_COLLAPSE_RE.sub("-", name.strip().lower()).strip("-")


def is_valid_identity(identity: str | None) -> bool:
    """Lexical sanity check for a canonical identity.

    At least two characters, only ``[A-Za-z0-9_-]``, and not made of
    punctuation alone.
    """
    if not identity or not _VALID_IDENTITY_RE.match(identity):
        return False
    return any(ch.isalnum() for ch in identity)


class IdentityRegistry:
    """Static lookup from display names and aliases to plugin slugs."""

    def __init__(
        self,
        known: dict[str, str] | None = None,
        aliases: dict[str, str] | None = None,
    ):
        """Initialize registry.

        Args:
            known: slug -> display name.
            aliases: lower-case alternative name -> slug.
        """
        self.known = dict(KNOWN_PLUGINS if known is None else known)
        self.aliases = {k.lower(): v for k, v in (PLUGIN_ALIASES if aliases is None else aliases).items()}
        self._by_name = {name.lower(): slug for slug, name in self.known.items()}

    def resolve(self, hint: str, kind: EntityKind = EntityKind.PLUGIN) -> str:
        """Canonical identity for a subject hint.

        Slug-shaped hints are kept (lower-cased). Free-text names go through
        the display-name and alias tables, then fall back to a synthesized
        slug. Only plugins are looked up; theme and core names are slugified.
        """
        text = hint.strip()
        lowered = text.lower()

        if kind in (EntityKind.PLUGIN, EntityKind.UNKNOWN):
            if lowered in self.known:
                return lowered
            if lowered in self._by_name:
                return self._by_name[lowered]
            if lowered in self.aliases:
                return self.aliases[lowered]

        if _SLUG_SHAPE_RE.match(text):
            return lowered

        slug = slugify(text)
        if kind in (EntityKind.PLUGIN, EntityKind.UNKNOWN) and slug in self.aliases:
            return self.aliases[slug]
        return slug

    def display_name(self, slug: str) -> str | None:
        return self.known.get(slug)

    def extend(self, known: dict[str, str] | None = None, aliases: dict[str, str] | None = None) -> None:
        """Add entries from configuration."""
        for slug, name in (known or {}).items():
            self.known[slug] = name
            self._by_name[name.lower()] = slug
        for alias, slug in (aliases or {}).items():
            self.aliases[alias.lower()] = slug
