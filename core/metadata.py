"""
Virtual Search Core Metadata
----------------------------
Project identity shared by the API, the health report and the CLI.
"""

from datetime import date

__project__ = "VirtualSearch"
__version__ = "1.0.0"
__maintainer__ = "Ruïz Verbeke"
__updated__ = date.today().isoformat()

CORE_METADATA = {
    "project": __project__,
    "version": __version__,
    "maintainer": __maintainer__,
    "updated": __updated__,
    "description": (
        "Searchable computed attributes for SQLAlchemy models: values derived "
        "in Python, cached in persisted columns, filterable and sortable in SQL."
    ),
}

def get_metadata() -> dict:
    """Return current system metadata as a dict."""
    return CORE_METADATA
