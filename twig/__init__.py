"""
twig - a small content-addressed version control system.

Snapshots files into an append-only object store, records history as a
commit DAG, and reconciles divergent branches with a three-way merge.
"""

__version__ = "0.1.0"

# Configuration is available at top level for convenience
from twig.config import config

__all__ = ["config", "__version__"]
