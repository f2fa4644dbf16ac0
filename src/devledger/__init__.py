"""
devledger - Development Ledger

Records pairing commit evidence with what/why/how rationale, stored in git.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from devledger.core.config.models import LedgerConfig
from devledger.core.ledger.models import Entry, Summary, WorkItem, Workset

__all__ = ["Entry", "LedgerConfig", "Summary", "WorkItem", "Workset", "__version__"]
