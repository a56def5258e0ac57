"""
Utility functions for the workflow marketplace.

Includes:
- Attachment filename sanitising
- Pagination helpers
"""

import re


def attachment_filename(name: str, extension: str = "json") -> str:
    """
    Build a download filename from a listing name.

    Keeps letters, digits, dashes and underscores; everything else becomes
    an underscore. Falls back to ``workflow`` for an empty result.

    Args:
        name: Listing name
        extension: File extension without the dot

    Returns:
        Filename safe to put in a Content-Disposition header
    """
    stem = re.sub(r"[^A-Za-z0-9_\-]+", "_", name).strip("_") or "workflow"
    return f"{stem}.{extension}"


def total_pages(total: int, per_page: int) -> int:
    """Number of pages needed for ``total`` items."""
    return (total + per_page - 1) // per_page


def calculate_offset(page: int = 1, per_page: int = 20) -> int:
    """
    Calculate database offset from page and per_page values.

    Args:
        page: Page number (1-indexed)
        per_page: Items per page

    Returns:
        Offset for database queries
    """
    return (page - 1) * per_page
