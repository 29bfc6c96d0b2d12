"""Tests for signal extractors."""

import json

from pressprobe.extract.extractors import (
    DEFAULT_EXTRACTORS,
    DeclaredConstantExtractor,
    GenericVersionExtractor,
    HttpHeaderVersionExtractor,
    PathIdentityExtractor,
    StructuredHeaderExtractor,
    decode_chunk,
    extract_source_map_url,
    leading_banner,
    path_identity,
    run_extractors,
    source_map_identities,
)
from pressprobe.fusion.scorer import fuse
from pressprobe.models import ConfidenceLevel, EntityKind, Provenance

PLUGIN_URL = "https://example.com/wp-content/plugins/sample-form/sample-form.php"
PLUGIN_HEADER = "<?php\n/*\nPlugin Name: Sample Form\nVersion: 2.3.1\nAuthor: Acme\n*/\n"


class TestStructuredHeader:
    """Tests for plugin and theme banners."""

    def test_plugin_header_with_url(self):
        """Test that the URL slug becomes the subject and the name is kept."""
        signals = StructuredHeaderExtractor().extract(PLUGIN_HEADER, url=PLUGIN_URL)

        assert len(signals) == 1
        assert signals[0].subject_hint == "sample-form"
        assert signals[0].display_name == "Sample Form"
        assert signals[0].confidence_weight == 0.95
        assert signals[0].version_raw == "2.3.1"

    def test_header_fuses_to_high_confidence_entity(self):
        """Test a full header scenario from text to entity."""
        entities = fuse(run_extractors(PLUGIN_HEADER, url=PLUGIN_URL))

        assert len(entities) == 1
        entity = entities[0]
        assert entity.identity == "sample-form"
        assert entity.resolved_version == "2.3.1"
        assert entity.confidence_level == ConfidenceLevel.HIGH

    def test_header_without_url(self):
        """Test that the display name is slugified when no URL is known."""
        entities = fuse(run_extractors(PLUGIN_HEADER))

        assert [e.identity for e in entities] == ["sample-form"]
        assert entities[0].display_name == "Sample Form"

    def test_docblock_header(self):
        """Test the @plugin/@version docblock form used in bundled scripts."""
        content = "/**\n * @plugin Fancy Gallery\n * @version 1.4.0\n */\n!function(){}();"
        signals = StructuredHeaderExtractor().extract(content)

        assert signals[0].subject_hint == "Fancy Gallery"
        assert signals[0].version_raw == "1.4.0"

    def test_theme_header(self):
        """Test a theme stylesheet header."""
        content = "/*\nTheme Name: Astra\nVersion: 4.5.2\n*/"
        url = "https://example.com/wp-content/themes/astra/style.css"
        signals = StructuredHeaderExtractor().extract(content, url=url)

        assert signals[0].kind == EntityKind.THEME
        assert signals[0].subject_hint == "astra"
        assert signals[0].version_raw == "4.5.2"

    def test_no_header(self):
        """Test ordinary content."""
        assert StructuredHeaderExtractor().extract("var a = 1;") == []

    def test_header_alone_is_medium(self):
        """Test that one banner without other evidence is a single medium entity."""
        entities = fuse(StructuredHeaderExtractor().extract(PLUGIN_HEADER, url=PLUGIN_URL))

        assert entities[0].confidence_level == ConfidenceLevel.MEDIUM
        assert entities[0].methods == ("structured-header",)

    def test_name_outside_leading_banner_ignored(self):
        """Test that a header string inside bundled code is not read as a banner."""
        content = 'var a = 1;\nvar label = "Plugin Name: Fake Widget";\n/*\nVersion: 9.9.9\n*/'
        assert StructuredHeaderExtractor().extract(content) == []

    def test_banner_after_php_opener(self):
        """Test a PHP file whose banner follows the opening tag."""
        signals = StructuredHeaderExtractor().extract("\ufeff<?php\n/**\n * Plugin Name: Acme Forms\n * Version: 1.0.2\n")

        assert signals[0].subject_hint == "Acme Forms"
        assert signals[0].version_raw == "1.0.2"

    def test_leading_banner(self):
        """Test which comment block counts as the file banner."""
        assert leading_banner("/* Theme Name: A */\nbody{}") == "/* Theme Name: A */"
        assert leading_banner("// Plugin: a\n// Version: 1.0.0\nvar x;") == "// Plugin: a\n// Version: 1.0.0\n"
        assert leading_banner("body{}\n/* Theme Name: A */") == ""


class TestUrlVersionParam:
    """Tests for cache-busting parameters."""

    def test_version_only_signal(self):
        """Test that a ?ver= outside wp-content gives one subject-less signal."""
        signals = run_extractors("", url="https://example.com/assets/app.js?ver=6.4.1")

        assert len(signals) == 1
        signal = signals[0]
        assert signal.provenance == Provenance.URL_VERSION_PARAM
        assert signal.confidence_weight == 0.9
        assert signal.version_raw == "6.4.1"
        assert signal.subject_hint is None

    def test_plugin_asset(self):
        """Test that a plugin asset URL gives identity and version."""
        url = "https://example.com/wp-content/plugins/contact-form-7/includes/js/index.js?ver=5.9.3"
        signals = run_extractors("", url=url)

        assert {s.provenance for s in signals} == {Provenance.URL_PATH, Provenance.URL_VERSION_PARAM}
        assert all(s.subject_hint == "contact-form-7" for s in signals)

    def test_date_param_ignored(self):
        """Test that a date used as cache buster is not a version."""
        assert run_extractors("", url="https://example.com/app.js?ver=2024.05.01") == []


class TestDeclaredConstant:
    """Tests for version constants in source."""

    def test_json_constant_with_name(self):
        """Test a localized settings object naming its plugin."""
        content = '{"plugin_version": "4.1.2", "plugin": "Fancy Gallery"}'
        signals = DeclaredConstantExtractor().extract(content)

        assert len(signals) == 1
        assert signals[0].version_raw == "4.1.2"
        assert signals[0].subject_hint == "Fancy Gallery"
        assert signals[0].kind == EntityKind.PLUGIN
        assert signals[0].confidence_weight == 0.75

    def test_single_quoted_define(self):
        """Test a PHP define with single quotes."""
        content = "define( 'MYPLUGIN_PLUGIN_VERSION', '3.0.1' );"
        signals = DeclaredConstantExtractor().extract(content)

        assert signals[0].version_raw == "3.0.1"

    def test_theme_constant(self):
        """Test a theme version constant attributed via the URL."""
        url = "https://example.com/wp-content/themes/astra/assets/js/main.js"
        signals = DeclaredConstantExtractor().extract("var theme_version = '4.5.2';", url=url)

        assert signals[0].kind == EntityKind.THEME
        assert signals[0].subject_hint == "astra"

    def test_context_required_family(self):
        """Test that generic *_version constants need plugin/theme context."""
        assert DeclaredConstantExtractor().extract("var build_version = '1.2.3';") == []


class TestGenericVersion:
    """Tests for the last-resort extractor."""

    def test_requires_plugin_keyword(self):
        """Test that content must mention "plugin"."""
        assert GenericVersionExtractor().extract('var cfg = {version: "2.0.1"};') == []

    def test_finds_version(self):
        """Test a version-looking token in plugin content."""
        signals = GenericVersionExtractor().extract('/* my plugin */ var cfg = {version: "2.0.1"};')

        assert signals[0].version_raw == "2.0.1"
        assert signals[0].provenance == Provenance.GENERIC_VERSION

    def test_rejects_dates(self):
        """Test that dates never come out of the generic extractor."""
        assert GenericVersionExtractor().extract("plugin build version: 2024.05.01") == []

    def test_fallback_only(self):
        """Test that it is skipped once another extractor found a version."""
        content = "/* plugin */ var cfg = {version: '9.9.9'};"
        url = "https://example.com/wp-content/plugins/foo/app.js?ver=1.2.0"
        signals = run_extractors(content, url=url)

        assert all(s.provenance != Provenance.GENERIC_VERSION for s in signals)


class TestHttpHeaderVersion:
    """Tests for explicit version headers."""

    def test_plugin_version_header(self):
        """Test the X-Plugin-Version header on a plugin asset."""
        url = "https://example.com/wp-content/plugins/foo/app.js"
        signals = HttpHeaderVersionExtractor().extract("", url=url, headers={"X-Plugin-Version": "1.2.3"})

        assert signals[0].version_raw == "1.2.3"
        assert signals[0].subject_hint == "foo"

    def test_etag_version(self):
        """Test a release number inside the ETag of a plugin asset."""
        url = "https://example.com/wp-content/plugins/foo/app.js"
        signals = HttpHeaderVersionExtractor().extract("", url=url, headers={"ETag": '"v2.3.1-5f3a"'})

        assert len(signals) == 1
        assert signals[0].version_raw == "2.3.1"
        assert signals[0].confidence_weight == 0.5

    def test_etag_ignored_without_asset_identity(self):
        """Test that an ETag on an unknown URL, or a hash ETag, is no signal."""
        extractor = HttpHeaderVersionExtractor()

        assert extractor.extract("", url="https://example.com/app.js", headers={"etag": '"2.3.1"'}) == []
        assert (
            extractor.extract("", url="https://example.com/wp-content/plugins/foo/a.js", headers={"etag": '"5f3a-1a2b"'})
            == []
        )

    def test_no_headers(self):
        """Test that missing headers yield nothing."""
        assert HttpHeaderVersionExtractor().extract("", url=None, headers=None) == []


class TestPathIdentity:
    """Tests for wp-content path parsing."""

    def test_path_identity(self):
        """Test plugin and theme path segments."""
        assert path_identity("/wp-content/plugins/akismet/x.js") == (EntityKind.PLUGIN, "akismet")
        assert path_identity("/wp-content/themes/astra/style.css") == (EntityKind.THEME, "astra")
        assert path_identity("/static/app.js") is None

    def test_paths_in_content(self):
        """Test that paths in content are reported as references."""
        content = "/* bundled from wp-content/plugins/foo/src and wp-content/plugins/bar/src */"
        signals = PathIdentityExtractor().extract(content)

        assert [s.subject_hint for s in signals] == ["foo", "bar"]
        assert all(s.provenance == Provenance.HTML_REFERENCE for s in signals)


class TestSourceMaps:
    """Tests for source map references and parsing."""

    def test_js_reference(self):
        """Test a script's trailing sourceMappingURL comment."""
        text = "console.log(1);\n//# sourceMappingURL=bundle.js.map"
        assert extract_source_map_url(text) == "bundle.js.map"

    def test_css_reference(self):
        """Test a stylesheet's block comment form."""
        text = "a{color:red}\n/*# sourceMappingURL=style.css.map */"
        assert extract_source_map_url(text) == "style.css.map"

    def test_data_uri_ignored(self):
        """Test that inline maps are not followed."""
        text = "x();\n//# sourceMappingURL=data:application/json;base64,eyJ9"
        assert extract_source_map_url(text) is None

    def test_identities_from_json(self):
        """Test reading identities from the sources list."""
        data = {
            "version": 3,
            "sources": [
                "webpack:///./wp-content/plugins/fancy-gallery/src/index.js",
                "webpack:///./node_modules/lodash/lodash.js",
                "webpack:///./wp-content/plugins/fancy-gallery/src/view.js",
            ],
        }
        assert source_map_identities(json.dumps(data)) == [(EntityKind.PLUGIN, "fancy-gallery")]

    def test_identities_from_truncated_map(self):
        """Test the text fallback for a map cut off by the range window."""
        text = '{"version":3,"sources":["../wp-content/plugins/slider-kit/src/a.js","../wp-con'
        assert source_map_identities(text) == [(EntityKind.PLUGIN, "slider-kit")]


class TestRunExtractors:
    """Tests for the extractor pipeline."""

    def test_precedence_order(self):
        """Test that extractors are ordered by precedence."""
        precedences = [e.precedence for e in DEFAULT_EXTRACTORS]
        assert precedences == sorted(precedences)

    def test_decode_chunk_tolerates_cut_sequences(self):
        """Test decoding a window that ends mid-character."""
        data = "café".encode("utf-8")[:-1]
        assert decode_chunk(data).startswith("caf")
