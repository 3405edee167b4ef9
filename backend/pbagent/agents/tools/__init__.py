"""Agent tools — organized by domain.

This module exports all tools available to agents:
- productboard_tools: Productboard read access (products, features, releases,
  notes, links, taxonomy)
"""

from __future__ import annotations

from .productboard_tools import *  # noqa: F403
from .productboard_tools import PRODUCTBOARD_TOOLS

__all__ = [
    "PRODUCTBOARD_TOOLS",
    # Productboard tools (13)
    "pb_list_products",
    "pb_list_feature_statuses",
    "pb_list_features",
    "pb_get_feature",
    "pb_list_releases",
    "pb_list_feature_release_assignments",
    "pb_list_initiatives",
    "pb_list_objectives",
    "pb_list_links",
    "pb_list_notes",
    "pb_list_tags",
    "pb_list_custom_fields",
    "pb_get_custom_field_values",
]
