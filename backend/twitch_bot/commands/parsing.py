"""Split management command arguments into a trigger and a payload.

A trigger is either a single bare token (``!greet``) or a quoted phrase
(``"hello there"``). Quoted phrases may contain escaped quotes (``\\"``).
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import NamedTuple

# Opening quote at start or after whitespace; closing quote not escaped and
# followed by whitespace or end of string.
_QUOTED_TRIGGER = re.compile(r'(?:(?<=\s)|^)"((?:\\"|[^"])*?)(?<!\\)"(?=\s|$)')


class ParsedTrigger(NamedTuple):
    trigger: str
    remainder: str


def parse_trigger(tokens: Sequence[str], start: int = 1) -> ParsedTrigger:
    """Parse ``tokens[start:]`` into (trigger, remainder).

    Tokens before *start* (the management command and its operation name)
    are ignored. Malformed quoting falls back to the bare-token form.
    """
    if len(tokens) <= start:
        return ParsedTrigger("", "")

    first = tokens[start]
    if first.startswith('"'):
        combined = " ".join(tokens[start:])
        match = _QUOTED_TRIGGER.search(combined)
        if match is not None:
            remainder = combined[: match.start()] + combined[match.end() :]
            return ParsedTrigger(match.group(1).strip(), remainder.strip())

    return ParsedTrigger(first, " ".join(tokens[start + 1 :]).strip())
