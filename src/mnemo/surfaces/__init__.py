"""Core memory destinations."""

from __future__ import annotations

from mnemo.surfaces.base import CoreMemoryDestination
from mnemo.surfaces.file import MarkdownFileDestination, configured_destinations

__all__ = ["CoreMemoryDestination", "MarkdownFileDestination", "configured_destinations"]
