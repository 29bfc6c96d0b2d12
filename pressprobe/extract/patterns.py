"""Detection signatures - declarative pattern, selector and endpoint tables.

Loaded once at import time and never mutated. The matching code in
``pressprobe.probes`` iterates these tables generically; adding a plugin
means adding a row here, not a branch there.
"""

import re
from dataclasses import dataclass, field


@dataclass(frozen=True)
class IndicatorPattern:
    """Regex that, when found in page content, hints at a plugin."""

    pattern: re.Pattern
    slug: str
    display_name: str


@dataclass(frozen=True)
class SelectorRule:
    """CSS selector whose presence in the DOM hints at a plugin."""

    selector: str
    slug: str
    display_name: str


@dataclass(frozen=True)
class EndpointRule:
    """Remote path whose existence hints at a plugin.

    A 401/403 still proves the route is registered.
    """

    path: str
    slug: str
    display_name: str
    accept_statuses: tuple[int, ...] = (200, 401, 403)


@dataclass(frozen=True)
class JsVariableRule:
    """Global JavaScript object a plugin localizes into the page."""

    variable: str
    slug: str
    display_name: str


@dataclass(frozen=True)
class MetaTagRule:
    """Meta tag content that names a plugin."""

    pattern: re.Pattern
    slug: str
    display_name: str
    name: str | None = None
    property: str | None = None


@dataclass(frozen=True)
class CategorySpec:
    """One functional category of related plugins."""

    related: tuple[str, ...]
    patterns: tuple[IndicatorPattern, ...] = field(default_factory=tuple)
    selectors: tuple[SelectorRule, ...] = field(default_factory=tuple)
    endpoints: tuple[EndpointRule, ...] = field(default_factory=tuple)


def _p(pattern: str, slug: str, display_name: str) -> IndicatorPattern:
    return IndicatorPattern(re.compile(pattern, re.IGNORECASE), slug, display_name)


# Directory segment that identifies a plugin or theme
WP_CONTENT_PATH_RE = re.compile(r"wp-content/(plugins|themes)/([a-zA-Z0-9_-]+)")

# Known plugins: slug -> display name
KNOWN_PLUGINS: dict[str, str] = {
    "wp-rocket": "WP Rocket",
    "wordpress-seo": "Yoast SEO",
    "elementor": "Elementor",
    "contact-form-7": "Contact Form 7",
    "woocommerce": "WooCommerce",
    "jetpack": "Jetpack",
    "wpforms-lite": "WPForms",
    "akismet": "Akismet",
    "wordfence": "Wordfence Security",
    "seo-by-rank-math": "Rank Math SEO",
    "gravityforms": "Gravity Forms",
    "ninja-forms": "Ninja Forms",
    "advanced-custom-fields": "Advanced Custom Fields",
    "js_composer": "WPBakery Page Builder",
    "revslider": "Slider Revolution",
    "layerslider": "LayerSlider",
    "mailchimp-for-wp": "Mailchimp for WordPress",
    "constant-contact-forms": "Constant Contact Forms",
    "wp-super-cache": "WP Super Cache",
    "w3-total-cache": "W3 Total Cache",
    "litespeed-cache": "LiteSpeed Cache",
    "autoptimize": "Autoptimize",
    "wp-optimize": "WP-Optimize",
    "wp-smushit": "Smush",
    "wp-fastest-cache": "WP Fastest Cache",
    "all-in-one-seo-pack": "All in One SEO",
    "updraftplus": "UpdraftPlus",
    "better-wp-security": "Solid Security",
    "easy-digital-downloads": "Easy Digital Downloads",
    "monsterinsights": "MonsterInsights",
}

# Alternative names seen in banners and generator tags
PLUGIN_ALIASES: dict[str, str] = {
    "yoast": "wordpress-seo",
    "yoast seo plugin": "wordpress-seo",
    "rank math": "seo-by-rank-math",
    "wpforms": "wpforms-lite",
    "visual composer": "js_composer",
    "wpbakery": "js_composer",
    "slider revolution": "revslider",
    "acf": "advanced-custom-fields",
    "ithemes security": "better-wp-security",
    "aioseo": "all-in-one-seo-pack",
}

PLUGIN_INDICATORS: tuple[IndicatorPattern, ...] = (
    _p(r"wp-rocket", "wp-rocket", "WP Rocket"),
    _p(r"yoast", "wordpress-seo", "Yoast SEO"),
    _p(r"elementor", "elementor", "Elementor"),
    _p(r"contact-form-7", "contact-form-7", "Contact Form 7"),
    _p(r"woocommerce", "woocommerce", "WooCommerce"),
    _p(r"jetpack", "jetpack", "Jetpack"),
    _p(r"wpforms", "wpforms-lite", "WPForms"),
    _p(r"akismet", "akismet", "Akismet"),
    _p(r"wordfence", "wordfence", "Wordfence Security"),
    _p(r"rank-math", "seo-by-rank-math", "Rank Math SEO"),
    _p(r"gravity.?forms", "gravityforms", "Gravity Forms"),
    _p(r"ninja.?forms", "ninja-forms", "Ninja Forms"),
    _p(r"advanced.?custom.?fields", "advanced-custom-fields", "Advanced Custom Fields"),
    _p(r"wpbakery|js_composer", "js_composer", "WPBakery Page Builder"),
    _p(r"revslider|slider.?revolution", "revslider", "Slider Revolution"),
    _p(r"layerslider", "layerslider", "LayerSlider"),
    _p(r"mc4wp|mailchimp-for-wp", "mailchimp-for-wp", "Mailchimp for WordPress"),
    _p(r"wp-super-cache", "wp-super-cache", "WP Super Cache"),
    _p(r"w3.?total.?cache", "w3-total-cache", "W3 Total Cache"),
    _p(r"litespeed", "litespeed-cache", "LiteSpeed Cache"),
    _p(r"autoptimize", "autoptimize", "Autoptimize"),
    _p(r"wp-optimize", "wp-optimize", "WP-Optimize"),
    _p(r"smush", "wp-smushit", "Smush"),
    _p(r"wp-fastest-cache|wpfc-", "wp-fastest-cache", "WP Fastest Cache"),
)

PLUGIN_SELECTORS: tuple[SelectorRule, ...] = (
    SelectorRule('[class*="elementor"]', "elementor", "Elementor"),
    SelectorRule('[class*="woocommerce"]', "woocommerce", "WooCommerce"),
    SelectorRule('[class*="yoast"]', "wordpress-seo", "Yoast SEO"),
    SelectorRule('[id*="jetpack"]', "jetpack", "Jetpack"),
    SelectorRule(".wpcf7", "contact-form-7", "Contact Form 7"),
    SelectorRule(".wpforms-form", "wpforms-lite", "WPForms"),
    SelectorRule(".gform_wrapper", "gravityforms", "Gravity Forms"),
    SelectorRule(".nf-form-wrap", "ninja-forms", "Ninja Forms"),
    SelectorRule(".acf-field", "advanced-custom-fields", "Advanced Custom Fields"),
    SelectorRule(".vc_row", "js_composer", "WPBakery Page Builder"),
    SelectorRule(".wpb_row", "js_composer", "WPBakery Page Builder"),
    SelectorRule("#rev_slider", "revslider", "Slider Revolution"),
    SelectorRule(".ls-container", "layerslider", "LayerSlider"),
    SelectorRule(".rank-math-breadcrumb", "seo-by-rank-math", "Rank Math SEO"),
    SelectorRule(".wp-rocket-vimeo-lazyload", "wp-rocket", "WP Rocket"),
    SelectorRule(".mc4wp-form", "mailchimp-for-wp", "Mailchimp for WordPress"),
)

REST_API_ENDPOINTS: tuple[EndpointRule, ...] = (
    EndpointRule("/wp-json/yoast/v1/", "wordpress-seo", "Yoast SEO"),
    EndpointRule("/wp-json/wc/v3/", "woocommerce", "WooCommerce"),
    EndpointRule("/wp-json/elementor/v1/", "elementor", "Elementor"),
    EndpointRule("/wp-json/contact-form-7/v1/", "contact-form-7", "Contact Form 7"),
    EndpointRule("/wp-json/wpforms/v1/", "wpforms-lite", "WPForms"),
    EndpointRule("/wp-json/gf/v2/", "gravityforms", "Gravity Forms"),
    EndpointRule("/wp-json/jetpack/v4/", "jetpack", "Jetpack"),
    EndpointRule("/wp-json/rankmath/v1/", "seo-by-rank-math", "Rank Math SEO"),
    EndpointRule("/wp-json/aioseo/v1/", "all-in-one-seo-pack", "All in One SEO"),
    EndpointRule("/wp-json/litespeed/v1/", "litespeed-cache", "LiteSpeed Cache"),
    EndpointRule("/wp-json/wordfence/v1/", "wordfence", "Wordfence Security"),
    EndpointRule("/wp-json/mc4wp/v1/", "mailchimp-for-wp", "Mailchimp for WordPress"),
)

JS_VARIABLES: tuple[JsVariableRule, ...] = (
    JsVariableRule("woocommerce_params", "woocommerce", "WooCommerce"),
    JsVariableRule("wc_add_to_cart_params", "woocommerce", "WooCommerce"),
    JsVariableRule("elementorFrontendConfig", "elementor", "Elementor"),
    JsVariableRule("yoast_seo", "wordpress-seo", "Yoast SEO"),
    JsVariableRule("wpcf7", "contact-form-7", "Contact Form 7"),
    JsVariableRule("wpforms_settings", "wpforms-lite", "WPForms"),
    JsVariableRule("gform", "gravityforms", "Gravity Forms"),
    JsVariableRule("jetpackL10n", "jetpack", "Jetpack"),
    JsVariableRule("rankMathSettings", "seo-by-rank-math", "Rank Math SEO"),
    JsVariableRule("wpRocketData", "wp-rocket", "WP Rocket"),
    JsVariableRule("wordfenceVars", "wordfence", "Wordfence Security"),
)

META_TAG_PATTERNS: tuple[MetaTagRule, ...] = (
    MetaTagRule(re.compile(r"elementor", re.I), "elementor", "Elementor", name="generator"),
    MetaTagRule(re.compile(r"yoast", re.I), "wordpress-seo", "Yoast SEO", name="generator"),
    MetaTagRule(re.compile(r"rank.*math", re.I), "seo-by-rank-math", "Rank Math SEO", name="generator"),
    MetaTagRule(re.compile(r"woocommerce", re.I), "woocommerce", "WooCommerce", name="generator"),
    MetaTagRule(re.compile(r"wpbakery", re.I), "js_composer", "WPBakery Page Builder", name="generator"),
    MetaTagRule(
        re.compile(r"yoast", re.I), "wordpress-seo", "Yoast SEO", property="article:publisher"
    ),
)


# HTML comments plugins print into the page; group 1, when present, is a version
PLUGIN_COMMENT_PATTERNS: tuple[IndicatorPattern, ...] = (
    _p(r"optimized with the Yoast SEO (?:Premium )?plugin v([0-9][0-9.]*)", "wordpress-seo", "Yoast SEO"),
    _p(r"Rank Math WordPress SEO plugin v([0-9][0-9.]*)", "seo-by-rank-math", "Rank Math SEO"),
    _p(r"All in One SEO(?: Pack)? ([0-9][0-9.]*)", "all-in-one-seo-pack", "All in One SEO"),
    _p(r"MonsterInsights v([0-9][0-9.]*)", "monsterinsights", "MonsterInsights"),
    _p(r"Performance optimized by W3 Total Cache", "w3-total-cache", "W3 Total Cache"),
    _p(r"Cached page generated by WP-Super-Cache", "wp-super-cache", "WP Super Cache"),
    _p(r"This website is like a Rocket", "wp-rocket", "WP Rocket"),
    _p(r"WP Fastest Cache file was created", "wp-fastest-cache", "WP Fastest Cache"),
    _p(r"Page cached by LiteSpeed Cache ([0-9][0-9.]*)", "litespeed-cache", "LiteSpeed Cache"),
)


def _rules_for(slugs: tuple[str, ...], rules: tuple) -> tuple:
    return tuple(rule for rule in rules if rule.slug in slugs)


def _category(*related: str) -> CategorySpec:
    return CategorySpec(
        related=related,
        patterns=_rules_for(related, PLUGIN_INDICATORS),
        selectors=_rules_for(related, PLUGIN_SELECTORS),
        endpoints=_rules_for(related, REST_API_ENDPOINTS),
    )


# Related-component registry: network probes for a category are skipped
# once a local scan has already identified one of its plugins confidently.
CATEGORY_TABLE: dict[str, CategorySpec] = {
    "contact_forms": _category(
        "contact-form-7", "wpforms-lite", "gravityforms", "ninja-forms", "constant-contact-forms"
    ),
    "ecommerce": _category("woocommerce", "easy-digital-downloads"),
    "seo": _category("wordpress-seo", "seo-by-rank-math", "all-in-one-seo-pack"),
    "security": _category("wordfence", "better-wp-security", "akismet"),
    "performance": _category(
        "wp-rocket",
        "w3-total-cache",
        "wp-super-cache",
        "litespeed-cache",
        "autoptimize",
        "wp-optimize",
        "wp-smushit",
        "wp-fastest-cache",
    ),
    "page_builders": _category("elementor", "js_composer", "revslider", "layerslider"),
    "marketing": _category("mailchimp-for-wp", "jetpack", "monsterinsights"),
    "fields": _category("advanced-custom-fields"),
}

# Files probed per plugin slug, in order
PLUGIN_README_FILES: tuple[str, ...] = ("readme.txt", "README.txt")
PLUGIN_MAIN_FILES: tuple[str, ...] = ("{slug}.php", "{slug_underscore}.php")

# Theme detection
THEME_BODY_CLASS_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\bwp-theme-([a-zA-Z0-9_-]+)"),
    re.compile(r"\btheme-([a-zA-Z0-9_-]+)"),
)
THEME_BODY_CLASS_IGNORE = frozenset({"default", "light", "dark", "child"})

# Platform (core) detection
CORE_HTML_INDICATORS: tuple[tuple[re.Pattern, str, float], ...] = (
    (re.compile(r"/wp-content/", re.I), "wp-content path", 0.85),
    (re.compile(r"/wp-includes/", re.I), "wp-includes path", 0.85),
    (re.compile(r"wp-json", re.I), "wp-json reference", 0.8),
    (re.compile(r"wp-emoji-release\.min\.js|wp-embed\.min\.js", re.I), "core asset", 0.85),
    (re.compile(r"wp-comments-post\.php|wp-login\.php", re.I), "core endpoint", 0.7),
    (re.compile(r"xmlrpc\.php", re.I), "xmlrpc reference", 0.6),
)
CORE_SELECTORS: tuple[tuple[str, str, float], ...] = (
    ("#wpadminbar", "admin bar", 0.85),
    ('link[rel="https://api.w.org/"]', "REST discovery link", 0.9),
    ('script[src*="wp-includes"]', "core scripts", 0.85),
    ('link[href*="wp-content"]', "content stylesheets", 0.75),
    ('[class*="wp-block-"]', "block markup", 0.6),
)
CORE_COMMENT_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"<!--\s*WordPress\s+(\d+\.\d+(?:\.\d+)?(?:[-\w]*)?)\s*-->", re.I),
    re.compile(r"<!--\s*WP\s+(\d+\.\d+(?:\.\d+)?(?:[-\w]*)?)\s*-->", re.I),
    re.compile(r"<!--\s*generated\s+by\s+WordPress\s+(\d+\.\d+(?:\.\d+)?(?:[-\w]*)?)\s*-->", re.I),
    re.compile(r"<!--\s*powered\s+by\s+WordPress\s+(\d+\.\d+(?:\.\d+)?(?:[-\w]*)?)\s*-->", re.I),
)
CORE_GENERATOR_RE = re.compile(r"WordPress\s+(\d+\.\d+(?:\.\d+)?(?:[-\w]*)?)", re.I)
CORE_JS_VERSION_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"window\.wp_version\s*=\s*[\"']([^\"']+)[\"']", re.I),
    re.compile(r"[\"']?wp_version[\"']?\s*:\s*[\"']([^\"']+)[\"']", re.I),
    re.compile(r"wordpress_version\s*:\s*[\"']([^\"']+)[\"']", re.I),
)


@dataclass(frozen=True)
class CoreVersionEndpoint:
    """Remote file that may disclose the core version."""

    path: str
    pattern: re.Pattern | None
    method: str
    weight: float


CORE_VERSION_ENDPOINTS: tuple[CoreVersionEndpoint, ...] = (
    CoreVersionEndpoint(
        "/readme.html",
        re.compile(r"Version\s+(\d+\.\d+(?:\.\d+)?)", re.I),
        "readme_file",
        0.85,
    ),
    # JSON body, parsed by the probe itself
    CoreVersionEndpoint("/wp-json/", None, "rest_api", 0.85),
    CoreVersionEndpoint(
        "/wp-links-opml.php",
        re.compile(r"generator=\"WordPress/(\d+\.\d+(?:\.\d+)?)\"", re.I),
        "opml_file",
        0.7,
    ),
    CoreVersionEndpoint(
        "/feed/",
        re.compile(r"<generator>[^<]*?wordpress\.org/\?v=(\d+\.\d+(?:\.\d+)?)", re.I),
        "rss_feed",
        0.7,
    ),
)
