"""Line-level comparison of canonical ``CREATE TABLE`` statements.

The expected (reference) side is always rendered as ``Original`` and the
actual (live) side as ``New``::

    --- Original
    +++ New
    @@ @@
     CREATE TABLE `glpi_computers` (
    -  `name` varchar(255),
    +  `name` varchar(100),
       ...

Either side may be ``None``: a table declared but absent from the database
diffs against nothing (every line removed), a live table with no declaration
diffs from nothing (every line added).
"""

from __future__ import annotations

import difflib
import logging
from collections.abc import Sequence

from schema_engine.models.policy import EquivalencePolicy
from schema_engine.models.report import TableDiff
from schema_engine.parser.normalizer import normalize_lines
from schema_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)

_CONTEXT_LINES = 3


def unified_line_diff(expected_lines: Sequence[str], actual_lines: Sequence[str]) -> str:
    """Render a unified diff of two line lists; ``""`` when they are equal."""
    expected = list(expected_lines)
    actual = list(actual_lines)
    if expected == actual:
        return ""

    output = ["--- Original\n", "+++ New\n"]
    matcher = difflib.SequenceMatcher(None, expected, actual, autojunk=False)
    for group in matcher.get_grouped_opcodes(_CONTEXT_LINES):
        output.append("@@ @@\n")
        for tag, i1, i2, j1, j2 in group:
            if tag == "equal":
                output.extend(f" {line}\n" for line in expected[i1:i2])
                continue
            if tag in ("replace", "delete"):
                output.extend(f"-{line}\n" for line in expected[i1:i2])
            if tag in ("replace", "insert"):
                output.extend(f"+{line}\n" for line in actual[j1:j2])
    return "".join(output)


@profile_operation("schema.diff")
def diff_tables(
    expected_raw: str | None,
    actual_raw: str | None,
    policy: EquivalencePolicy,
) -> TableDiff:
    """Normalise both statements under *policy* and diff their canonical forms.

    Parameters
    ----------
    expected_raw:
        Declared ``CREATE TABLE`` statement, or ``None`` for an undeclared table.
    actual_raw:
        ``SHOW CREATE TABLE`` output, or ``None`` for a table missing from the
        database.
    policy:
        Equivalence policy shared by both sides.

    Raises
    ------
    ParseError
        If either statement cannot be parsed.
    """
    expected_lines = normalize_lines(expected_raw, policy) if expected_raw is not None else []
    actual_lines = normalize_lines(actual_raw, policy, is_from_live_db=True) if actual_raw is not None else []

    diff_text = unified_line_diff(expected_lines, actual_lines)
    return TableDiff(has_differences=bool(diff_text), diff_text=diff_text)


def has_differences(expected_raw: str | None, actual_raw: str | None, policy: EquivalencePolicy) -> bool:
    """True iff the canonical forms of the two statements differ."""
    return diff_tables(expected_raw, actual_raw, policy).has_differences
