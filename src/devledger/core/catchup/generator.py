"""
Rationale generation for catch-up.

A RationaleGenerator turns a prompt describing a commit group into free
text following a three-line WHAT/WHY/HOW convention. The default
implementation shells out to the Claude CLI; tests and other integrations
can supply any object with a ``complete`` method.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Protocol, runtime_checkable

from devledger.core.errors import LedgerSystemError
from devledger.core.ledger.grouping import CommitGroup
from devledger.core.ledger.models import Summary

logger = logging.getLogger(__name__)

# Default timeout for Claude CLI calls (seconds)
CLAUDE_TIMEOUT = 120

DEFAULT_WHAT = "Auto-documented commits"
DEFAULT_WHY = "Historical documentation"
DEFAULT_HOW = "See commit messages for details"

CATCHUP_SYSTEM_PROMPT = """You are a development documentation assistant. \
Given git commits, generate a concise what/why/how summary.

Output EXACTLY in this format (3 lines, no extra text):
WHAT: <one sentence describing what was done>
WHY: <one sentence explaining the motivation>
HOW: <one sentence describing the approach>

Rules: Be concise (<100 chars each). Use active voice. Infer reason if unclear."""


class GeneratorError(LedgerSystemError):
    """The rationale generator failed (not installed, timed out, bad exit)."""


@runtime_checkable
class RationaleGenerator(Protocol):
    """Anything that can complete a prompt into free text."""

    def complete(self, prompt: str, system_prompt: str) -> str:
        """
        Generate text for a prompt.

        Raises:
            GeneratorError: If generation fails
        """
        ...


class ClaudeCLIGenerator:
    """
    Generate rationale with the ``claude`` command-line tool.

    Example:
        >>> generator = ClaudeCLIGenerator(model="haiku", timeout=60)
        >>> text = generator.complete(build_catchup_prompt(group), CATCHUP_SYSTEM_PROMPT)
    """

    def __init__(self, model: str = "haiku", timeout: int = CLAUDE_TIMEOUT) -> None:
        self.model = model
        self.timeout = timeout

    def complete(self, prompt: str, system_prompt: str) -> str:
        args = ["claude", "--model", self.model, "--print"]
        if system_prompt:
            args += ["--append-system-prompt", system_prompt]
        args += ["-p", prompt]
        logger.debug("Running claude --model %s (%d prompt chars)", self.model, len(prompt))

        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise GeneratorError(f"Claude CLI timed out after {self.timeout}s") from e
        except FileNotFoundError as e:
            raise GeneratorError("Claude CLI not installed") from e
        except OSError as e:
            raise GeneratorError(f"OS error running Claude CLI: {e}") from e

        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            raise GeneratorError(f"Claude CLI failed: {detail}")
        return result.stdout


def build_catchup_prompt(group: CommitGroup) -> str:
    """
    Describe a commit group for the generator.

    Lists the group key, commit count and, per commit, short SHA, date,
    subject and body.
    """
    lines = [f"Group: {group.key}", f"Commits: {len(group.commits)}", ""]
    for idx, commit in enumerate(group.commits, start=1):
        lines.append(f"--- Commit {idx} ---")
        lines.append(f"SHA: {commit.short}")
        lines.append(f"Date: {commit.date.strftime('%Y-%m-%d %H:%M')}")
        lines.append(f"Subject: {commit.subject}")
        if commit.body:
            lines.append("Body:")
            lines.append(commit.body)
        lines.append("")
    return "\n".join(lines) + "\n"


def parse_rationale(text: str) -> Summary:
    """
    Extract WHAT/WHY/HOW lines from generator output.

    Missing or empty lines fall back to fixed defaults; later lines with the
    same prefix win.

    Example:
        >>> parse_rationale("WHAT: Add cache\\nHOW: LRU dict").why
        'Historical documentation'
    """
    what = why = how = ""
    for raw in text.splitlines():
        line = raw.strip()
        if line.startswith("WHAT:"):
            what = line[len("WHAT:"):].strip()
        elif line.startswith("WHY:"):
            why = line[len("WHY:"):].strip()
        elif line.startswith("HOW:"):
            how = line[len("HOW:"):].strip()
    return Summary(
        what=what or DEFAULT_WHAT,
        why=why or DEFAULT_WHY,
        how=how or DEFAULT_HOW,
    )
