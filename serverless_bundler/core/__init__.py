"""
Core logic package.

URL map reconciliation, redirect merging and the bundling session.
"""

from .bundler import BundlerHelper
from .redirects import (
    CallableRedirectPolicy,
    NetlifyRedirectPolicy,
    RedirectPolicy,
    add_redirects_without_duplicates,
    merge_redirects,
)
from .url_map import TemplateMapEntry, reconcile_url_map

__all__ = [
    "BundlerHelper",
    "CallableRedirectPolicy",
    "NetlifyRedirectPolicy",
    "RedirectPolicy",
    "add_redirects_without_duplicates",
    "merge_redirects",
    "TemplateMapEntry",
    "reconcile_url_map",
]
