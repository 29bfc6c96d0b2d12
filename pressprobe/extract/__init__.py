"""Extract module - signal extractors, pattern tables and version handling."""

from pressprobe.extract.extractors import (
    DEFAULT_EXTRACTORS,
    DeclaredConstantExtractor,
    GenericVersionExtractor,
    HttpHeaderVersionExtractor,
    PathIdentityExtractor,
    StructuredHeaderExtractor,
    UrlVersionParamExtractor,
    extract_source_map_url,
    run_extractors,
    source_map_identities,
)
from pressprobe.extract.versions import (
    compare_versions,
    is_valid_core_version,
    is_valid_version,
    normalize_version,
    resolve_version,
)

__all__ = [
    "DEFAULT_EXTRACTORS",
    "DeclaredConstantExtractor",
    "GenericVersionExtractor",
    "HttpHeaderVersionExtractor",
    "PathIdentityExtractor",
    "StructuredHeaderExtractor",
    "UrlVersionParamExtractor",
    "compare_versions",
    "extract_source_map_url",
    "is_valid_core_version",
    "is_valid_version",
    "normalize_version",
    "resolve_version",
    "run_extractors",
    "source_map_identities",
]
