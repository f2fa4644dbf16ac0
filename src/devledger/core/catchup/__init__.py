"""
LLM-assisted catch-up for undocumented history.

Example:
    >>> from devledger.core.catchup import ClaudeCLIGenerator, EnrichmentScheduler
    >>> scheduler = EnrichmentScheduler(ledger, ClaudeCLIGenerator(model="haiku"))
    >>> result = scheduler.run(groups)
"""

from devledger.core.catchup.generator import (
    CATCHUP_SYSTEM_PROMPT,
    ClaudeCLIGenerator,
    GeneratorError,
    RationaleGenerator,
    build_catchup_prompt,
    parse_rationale,
)
from devledger.core.catchup.scheduler import (
    CatchupEntryRef,
    CatchupResult,
    EnrichmentScheduler,
    GroupFailure,
    SchedulerCallback,
)

__all__ = [
    "CATCHUP_SYSTEM_PROMPT",
    "ClaudeCLIGenerator",
    "GeneratorError",
    "RationaleGenerator",
    "build_catchup_prompt",
    "parse_rationale",
    "CatchupEntryRef",
    "CatchupResult",
    "EnrichmentScheduler",
    "GroupFailure",
    "SchedulerCallback",
]
