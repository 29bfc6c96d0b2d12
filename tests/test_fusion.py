"""Tests for evidence fusion, scoring and identity resolution."""

import dataclasses

import pytest

from pressprobe.fusion.registry import IdentityRegistry, is_valid_identity, slugify
from pressprobe.fusion.scorer import EvidenceFuser, confidence_for, fuse, score_for
from pressprobe.models import ConfidenceLevel, EntityKind, Provenance, Signal


def _signal(provenance, weight, subject="foo", version=None, kind=EntityKind.PLUGIN):
    return Signal(
        provenance=provenance,
        confidence_weight=weight,
        subject_hint=subject,
        version_raw=version,
        kind=kind,
        source=f"{provenance.value}:{subject}",
    )


class TestVersionDedup:
    """Tests for version candidates on a fused entity."""

    def test_equivalent_raw_versions_merge(self):
        """Test that "3.2" and "3.2.0" resolve to one candidate."""
        fuser = EvidenceFuser().add_all(
            [
                _signal(Provenance.URL_VERSION_PARAM, 0.9, "cache-plugin", "3.2"),
                _signal(Provenance.ASSET_HEADER, 0.85, "cache-plugin", "3.2.0"),
            ]
        )
        entity = fuser.get("cache-plugin")

        assert list(entity.version_candidates) == ["3.2.0"]
        assert entity.resolved_version == "3.2.0"

    def test_date_signal_is_identity_only(self):
        """Test that a date-shaped version still counts as identity evidence."""
        fuser = EvidenceFuser().add_all(
            [
                _signal(Provenance.URL_VERSION_PARAM, 0.9, "cache-plugin", "3.2"),
                _signal(Provenance.GENERIC_VERSION, 0.4, "cache-plugin", "2024.05.01"),
            ]
        )
        entity = fuser.get("cache-plugin")

        assert entity.resolved_version == "3.2.0"
        assert len(entity.signals) == 2
        assert "2024.05.01" not in entity.version_candidates


class TestConfidence:
    """Tests for the categorical confidence rule."""

    def test_two_high_signals(self):
        """Test that two high-weight signals give HIGH."""
        signals = [_signal(Provenance.URL_PATH, 0.8), _signal(Provenance.META_TAG, 0.9)]
        assert confidence_for(signals) == ConfidenceLevel.HIGH

    def test_one_high_signal(self):
        """Test that one high-weight signal gives MEDIUM."""
        assert confidence_for([_signal(Provenance.META_TAG, 0.9)]) == ConfidenceLevel.MEDIUM

    def test_three_medium_signals(self):
        """Test that three medium-weight signals give MEDIUM."""
        signals = [
            _signal(Provenance.SELECTOR, 0.65),
            _signal(Provenance.URL_PATH, 0.7),
            _signal(Provenance.JS_VARIABLE, 0.75),
        ]
        assert confidence_for(signals) == ConfidenceLevel.MEDIUM

    def test_one_source_counts_once(self):
        """Test that repeated signals from one file and method are one piece of evidence."""
        signals = [
            Signal(Provenance.STRUCTURED_HEADER, 0.95, "foo", source="foo.php"),
            Signal(Provenance.STRUCTURED_HEADER, 0.95, "foo", "1.0.0", source="foo.php"),
        ]
        assert confidence_for(signals) == ConfidenceLevel.MEDIUM

    def test_high_backed_by_second_method(self):
        """Test that a high-weight signal confirmed by another method gives HIGH."""
        signals = [_signal(Provenance.STRUCTURED_HEADER, 0.95), _signal(Provenance.URL_PATH, 0.7)]
        assert confidence_for(signals) == ConfidenceLevel.HIGH

    def test_high_not_backed_by_same_method(self):
        """Test that a medium signal of the same method does not back a high one."""
        signals = [
            Signal(Provenance.URL_VERSION_PARAM, 0.9, "foo", "1.0.0", source="a.js"),
            Signal(Provenance.URL_VERSION_PARAM, 0.7, "foo", "1.0.0", source="b.js"),
        ]
        assert confidence_for(signals) == ConfidenceLevel.MEDIUM

    def test_weak_signals(self):
        """Test that weak signals stay LOW."""
        signals = [_signal(Provenance.CONTENT_PATTERN, 0.5), _signal(Provenance.SELECTOR, 0.65)]
        assert confidence_for(signals) == ConfidenceLevel.LOW

    def test_monotonic(self):
        """Test that adding a signal never lowers confidence."""
        signals = [
            _signal(Provenance.CONTENT_PATTERN, 0.5),
            _signal(Provenance.SELECTOR, 0.65),
            _signal(Provenance.URL_PATH, 0.7),
            _signal(Provenance.GENERIC_VERSION, 0.4),
            _signal(Provenance.META_TAG, 0.8),
            _signal(Provenance.CONTENT_PATTERN, 0.5),
            _signal(Provenance.README, 0.9),
        ]
        fuser = EvidenceFuser()
        previous = ConfidenceLevel.LOW
        for signal in signals:
            entity = fuser.add(signal)
            assert entity.confidence_level.rank >= previous.rank
            previous = entity.confidence_level

        assert previous == ConfidenceLevel.HIGH


class TestScore:
    """Tests for the weighted score."""

    def test_counted_once_per_type(self):
        """Test that repeating a signal type doesn't inflate the score."""
        once = score_for([_signal(Provenance.SELECTOR, 0.65)])
        twice = score_for([_signal(Provenance.SELECTOR, 0.65), _signal(Provenance.SELECTOR, 0.65, "bar")])

        assert once == twice == 8

    def test_strongest_level_per_type(self):
        """Test that the best level of a type sets its multiplier."""
        signals = [_signal(Provenance.URL_PATH, 0.5), _signal(Provenance.URL_PATH, 0.9)]
        assert score_for(signals) == 15

    def test_capped(self):
        """Test that the score never exceeds 100."""
        signals = [
            _signal(provenance, 0.95)
            for provenance in (
                Provenance.STRUCTURED_HEADER,
                Provenance.META_GENERATOR,
                Provenance.FILE_FETCH,
                Provenance.README,
                Provenance.REST_API,
            )
        ]
        assert score_for(signals) == 100


class TestNoiseFilter:
    """Tests for dropping false positives."""

    def test_single_weak_method_dropped(self):
        """Test that a lone weak identity-only entity is dropped."""
        fuser = EvidenceFuser().add_all([_signal(Provenance.CONTENT_PATTERN, 0.5, "maybe-plugin")])

        assert "maybe-plugin" in fuser
        assert fuser.entities() == []

    def test_two_methods_kept(self):
        """Test that two independent weak methods are enough to keep an entity."""
        fuser = EvidenceFuser().add_all(
            [
                _signal(Provenance.CONTENT_PATTERN, 0.5, "maybe-plugin"),
                _signal(Provenance.SELECTOR, 0.65, "maybe-plugin"),
            ]
        )
        assert [e.identity for e in fuser.entities()] == ["maybe-plugin"]

    def test_versioned_entity_kept(self):
        """Test that a low-confidence entity with a version is kept."""
        entities = fuse([_signal(Provenance.DECLARED_CONSTANT, 0.75, "fancy-gallery", "4.1.2")])
        assert [e.identity for e in entities] == ["fancy-gallery"]

    def test_invalid_identity_dropped(self):
        """Test that one-character identities are dropped even when strong."""
        entities = fuse(
            [_signal(Provenance.README, 0.9, "x", "1.0.0"), _signal(Provenance.FILE_FETCH, 0.85, "x")]
        )
        assert entities == ()

    def test_version_only_signal_discarded(self):
        """Test that signals without a subject are counted, not fused."""
        fuser = EvidenceFuser()
        result = fuser.add(Signal(Provenance.URL_VERSION_PARAM, 0.9, version_raw="6.4.1"))

        assert result is None
        assert fuser.discarded == 1
        assert len(fuser) == 0


class TestOrdering:
    """Tests for snapshot ordering."""

    def test_sorted_by_score_then_identity(self):
        """Test best-first ordering with a deterministic tie-break."""
        signals = [
            _signal(Provenance.README, 0.9, "beta", "1.0"),
            _signal(Provenance.README, 0.9, "alpha", "1.0"),
            _signal(Provenance.STRUCTURED_HEADER, 0.95, "gamma", "1.0"),
        ]
        assert [e.identity for e in fuse(signals)] == ["gamma", "alpha", "beta"]

    def test_snapshot_is_frozen(self):
        """Test that reporting collaborators get read-only entities."""
        snapshot = fuse([_signal(Provenance.README, 0.9, "alpha", "1.0")])[0]

        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.score = 0


class TestIdentityRegistry:
    """Tests for name and alias resolution."""

    def test_display_name_to_slug(self):
        """Test resolving a known display name."""
        assert IdentityRegistry().resolve("Yoast SEO") == "wordpress-seo"

    def test_alias(self):
        """Test resolving an alias, case-insensitively."""
        assert IdentityRegistry().resolve("Yoast") == "wordpress-seo"

    def test_slug_kept(self):
        """Test that slug-shaped hints are kept lower-cased."""
        assert IdentityRegistry().resolve("Contact-Form-7") == "contact-form-7"

    def test_unknown_name_slugified(self):
        """Test slug synthesis for unknown names."""
        assert IdentityRegistry().resolve("My Cool Plugin!") == "my-cool-plugin"

    def test_themes_not_looked_up(self):
        """Test that theme names skip the plugin tables."""
        assert IdentityRegistry().resolve("Yoast", EntityKind.THEME) == "yoast"

    def test_extend(self):
        """Test adding entries from configuration."""
        registry = IdentityRegistry()
        registry.extend({"acme-forms": "Acme Forms"}, {"acme": "acme-forms"})

        assert registry.resolve("Acme Forms") == "acme-forms"
        assert registry.resolve("ACME") == "acme-forms"
        assert registry.display_name("acme-forms") == "Acme Forms"

    def test_fused_aliases_merge(self):
        """Test that signals naming the same plugin differently become one entity."""
        entities = fuse(
            [
                _signal(Provenance.META_TAG, 0.8, "Yoast SEO"),
                _signal(Provenance.URL_PATH, 0.85, "wordpress-seo", "21.5"),
            ]
        )
        assert [e.identity for e in entities] == ["wordpress-seo"]
        assert entities[0].display_name == "Yoast SEO"

    def test_slugify_and_validity(self):
        """Test the slug helpers."""
        assert slugify("  Fancy  Gallery ") == "fancy-gallery"
        assert is_valid_identity("ab")
        assert not is_valid_identity("x")
        assert not is_valid_identity("--")
        assert not is_valid_identity("has space")
