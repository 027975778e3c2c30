"""Tour operator back office: catalogs, tours, and the tour settlement summary.

This package holds the repository contract, its local and remote storage
backends, and the financial aggregation that both must agree on.
"""

__version__ = "0.1.0"
