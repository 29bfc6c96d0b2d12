"""Tests for local page scans and single network probes."""

import httpx
import pytest
from rich.console import Console

from pressprobe.events import CompositeHook, ConsoleHook, ProbeEvent, RecordingHook
from pressprobe.extract.patterns import EndpointRule
from pressprobe.fusion.scorer import fuse
from pressprobe.models import ConfidenceLevel, EntityKind, Provenance
from pressprobe.net.page import PageSnapshot
from pressprobe.net.range_fetch import RangeFetcher
from pressprobe.probes.local import (
    run_local_scans,
    scan_asset_paths,
    scan_html_comments,
    scan_inline_data,
    scan_js_variables,
    scan_meta_tags,
    scan_selectors,
    scan_theme,
)
from pressprobe.probes.network import probe_endpoint, probe_plugin_readme

SITE = "https://example.com/"


def page(html: str) -> PageSnapshot:
    return PageSnapshot.from_html(SITE, html)


class TestLocalScans:
    """Tests for each page scan."""

    def test_meta_generator_with_version(self):
        """Test a plugin generator tag carrying a version."""
        signals = scan_meta_tags(page('<meta name="generator" content="Elementor 3.18.2; features: e_dom">'))

        assert len(signals) == 1
        assert signals[0].subject_hint == "elementor"
        assert signals[0].version_raw == "3.18.2"
        assert signals[0].provenance == Provenance.META_TAG

    def test_html_comment_banner(self):
        """Test an SEO plugin banner comment."""
        html = "<html><head><!-- This site is optimized with the Yoast SEO plugin v21.5 - https://yoast.com --></head></html>"
        signals = scan_html_comments(page(html))

        assert [(s.subject_hint, s.version_raw) for s in signals] == [("wordpress-seo", "21.5")]

    def test_comment_without_version(self):
        """Test a cache banner that names the plugin only."""
        signals = scan_html_comments(page("<!-- Performance optimized by W3 Total Cache. -->"))

        assert signals[0].subject_hint == "w3-total-cache"
        assert signals[0].version_raw is None

    def test_js_variables(self):
        """Test localized globals in inline scripts."""
        html = '<script>var wpcf7 = {"api": {"root": "/wp-json/"}};</script>'
        signals = scan_js_variables(page(html))

        assert [s.subject_hint for s in signals] == ["contact-form-7"]

    def test_js_variable_needs_assignment(self):
        """Test that a mere mention is not a declaration."""
        assert scan_js_variables(page("<script>console.log('wpcf7 missing');</script>")) == []

    def test_inline_data(self):
        """Test version constants inside inline settings objects."""
        html = '<script>var fgSettings = {"plugin_version": "4.1.2", "plugin": "Fancy Gallery"};</script>'
        signals = scan_inline_data(page(html))

        assert len(signals) == 1
        assert signals[0].provenance == Provenance.INLINE_DATA
        assert signals[0].subject_hint == "Fancy Gallery"
        assert signals[0].version_raw == "4.1.2"

    def test_selectors(self):
        """Test DOM markers left by form plugins."""
        signals = scan_selectors(page('<div class="wpcf7"><form></form></div>'))

        assert "contact-form-7" in [s.subject_hint for s in signals]

    def test_asset_paths(self):
        """Test slugs and versions from asset URLs and other references."""
        html = (
            '<script src="/wp-content/plugins/akismet/a.js?ver=5.3"></script>'
            '<img src="/wp-content/plugins/lazy-images/img/blank.gif">'
        )
        signals = scan_asset_paths(page(html))

        assert {(s.subject_hint, s.provenance) for s in signals} == {
            ("akismet", Provenance.URL_PATH),
            ("akismet", Provenance.URL_VERSION_PARAM),
            ("lazy-images", Provenance.HTML_REFERENCE),
        }

    def test_theme(self):
        """Test the theme stylesheet link and body class."""
        html = (
            '<html><head><link rel="stylesheet" href="/wp-content/themes/astra/style.css?ver=4.5.2"></head>'
            '<body class="home wp-theme-astra theme-dark"></body></html>'
        )
        signals = scan_theme(page(html))

        assert all(s.kind == EntityKind.THEME for s in signals)
        assert [(s.subject_hint, s.provenance) for s in signals] == [
            ("astra", Provenance.HTML_REFERENCE),
            ("astra", Provenance.BODY_CLASS),
        ]

    def test_plain_page(self):
        """Test that an unrelated page produces no signals."""
        assert run_local_scans(page("<html><body><p>Just a page</p></body></html>")) == []


class TestNetworkProbes:
    """Tests for single endpoint and readme probes."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, weight", [(200, 0.8), (401, 0.6), (403, 0.6)])
    async def test_endpoint_statuses(self, status, weight):
        """Test that guarded routes still count, with less weight."""
        rule = EndpointRule("/wp-json/wc/v3/", "woocommerce", "WooCommerce")
        transport = httpx.MockTransport(lambda request: httpx.Response(status))

        async with httpx.AsyncClient(transport=transport) as client:
            signals = await probe_endpoint(client, SITE, rule)

        assert len(signals) == 1
        assert signals[0].confidence_weight == weight
        assert signals[0].provenance == Provenance.REST_API

    @pytest.mark.asyncio
    async def test_endpoint_missing(self):
        """Test that a 404 is no signal."""
        rule = EndpointRule("/wp-json/wc/v3/", "woocommerce", "WooCommerce")
        transport = httpx.MockTransport(lambda request: httpx.Response(404))

        async with httpx.AsyncClient(transport=transport) as client:
            assert await probe_endpoint(client, SITE, rule) == []

    @pytest.mark.asyncio
    async def test_readme_rejects_html(self, fake_site):
        """Test that a themed 404 page served as 200 is not read as a readme."""
        site = fake_site(
            {"/wp-content/plugins/foo/readme.txt": "<html><body>Stable tag: 9.9.9 Not found</body></html>"}
        )

        async with httpx.AsyncClient(transport=site.transport()) as client:
            signals = await probe_plugin_readme(RangeFetcher(client), SITE, "foo")

        assert signals == []

    @pytest.mark.asyncio
    async def test_readme_is_one_signal(self, fake_site):
        """Test that a readme alone gives one signal and a medium-confidence entity."""
        site = fake_site({"/wp-content/plugins/foo-bar/readme.txt": "=== Foo Bar ===\nStable tag: 1.2.3\n"})

        async with httpx.AsyncClient(transport=site.transport()) as client:
            signals = await probe_plugin_readme(RangeFetcher(client), SITE, "foo-bar")

        assert [(s.provenance, s.version_raw) for s in signals] == [(Provenance.README, "1.2.3")]
        assert signals[0].display_name == "Foo Bar"

        entity = fuse(signals)[0]
        assert entity.confidence_level == ConfidenceLevel.MEDIUM
        assert entity.methods == ("readme",)

    @pytest.mark.asyncio
    async def test_readme_without_stable_tag(self, fake_site):
        """Test that a readme with no usable version still confirms the slug."""
        site = fake_site({"/wp-content/plugins/foo-bar/readme.txt": "=== Foo Bar ===\nStable tag: trunk\n"})

        async with httpx.AsyncClient(transport=site.transport()) as client:
            signals = await probe_plugin_readme(RangeFetcher(client), SITE, "foo-bar")

        assert [(s.provenance, s.version_raw) for s in signals] == [(Provenance.FILE_FETCH, None)]


class TestEventHooks:
    """Tests for event hooks."""

    def test_recording_and_composite(self):
        """Test that a composite hook fans out to every hook."""
        first, second = RecordingHook(), RecordingHook()
        hook = CompositeHook(first, None, second)

        hook(ProbeEvent("run.start", "local", "https://example.com/"))

        assert first.names() == ["run.start"]
        assert second.names() == ["run.start"]

    def test_console_hook_quiet_by_default(self):
        """Test that per-probe events are only printed in verbose mode."""
        console = Console(record=True, width=120)
        ConsoleHook(console)(ProbeEvent("probe.done", "network", "endpoint:/wp-json/"))
        ConsoleHook(console)(ProbeEvent("budget.exceeded", "budget", "skipping entities"))

        text = console.export_text()
        assert "probe.done" not in text
        assert "budget.exceeded" in text

    def test_event_to_dict(self):
        """Test event serialization."""
        event = ProbeEvent("scan.theme", "local", "2 signals", 12.345)
        assert event.to_dict() == {"name": "scan.theme", "phase": "local", "detail": "2 signals", "elapsed_ms": 12.3}
