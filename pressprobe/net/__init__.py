"""Net module - HTTP client, page fetch and byte-range fetching."""

from pressprobe.net.client import create_client
from pressprobe.net.page import PageSnapshot, fetch_page
from pressprobe.net.range_fetch import FetchFailure, RangeChunk, RangeFetcher

__all__ = ["FetchFailure", "PageSnapshot", "RangeChunk", "RangeFetcher", "create_client", "fetch_page"]
