# FakeNUT - Command Parser
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Provides the deterministic tokenizer that turns one line received from a
# NUT client into a command token and its positional arguments.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Parsing helpers for NUT protocol request lines.

Key functions
- parse_line(line: str) -> ParsedCommand
    Split a single request line on ASCII spaces into the command token and
    up to three positional arguments.

Notes and conventions
- Matching is case-sensitive: the dispatcher compares the command against
  upper-case names, so `list ups` is an unknown command.
- There is no quoting or escaping, and runs of spaces are not collapsed.
  `LIST  VAR` yields the arguments ("", "VAR", "").
- Missing arguments are empty strings and tokens past the fourth are
  dropped. Parsing never fails; an empty line gives an empty command.
"""
from __future__ import annotations

from typing import NamedTuple

# Command token plus three positional arguments
MAX_TOKENS = 4


class ParsedCommand(NamedTuple):
    command: str
    arg1: str = ""
    arg2: str = ""
    arg3: str = ""


def parse_line(line: str) -> ParsedCommand:
    """Tokenize one request line (already stripped of its line terminator)."""
    tokens = line.split(" ")[:MAX_TOKENS]
    tokens += [""] * (MAX_TOKENS - len(tokens))
    return ParsedCommand(*tokens)
