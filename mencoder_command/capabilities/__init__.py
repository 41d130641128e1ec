"""
Capability catalogs of the transcoder binary.
"""

from .catalog import (
    CapabilityCatalog,
    parse_codecs,
    parse_encoders,
    parse_filters,
    parse_formats,
    reset_capability_cache,
)

__all__ = [
    "CapabilityCatalog",
    "parse_codecs",
    "parse_encoders",
    "parse_filters",
    "parse_formats",
    "reset_capability_cache",
]
