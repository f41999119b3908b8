"""Rewrites C99 compound literals into C89-compatible hoisted temporaries."""

from .api import (  # noqa: F401
    convert_source,
    parse_source,
    build_registry_from_source,
    locate_sites_in_source,
    plan_source,
    dump_registry,
    dump_sites,
    dump_plan,
)
from .errors import DecompoundError  # noqa: F401
