"""Identifier quoting.

Every dialect wraps table and column names in its own pair of quote
characters (backticks, double quotes, square brackets) or none at all.
``IdentifierQuoter`` holds that pair and applies it to dotted identifiers
while leaving expressions alone.
"""

import re
from typing import Optional

_WHITESPACE_RE = re.compile(r"[\t ]+")
_AS_RE = re.compile(r" as ", re.IGNORECASE)


class IdentifierQuoter:
    """Quote ``table.column`` style identifiers for one dialect.

    Args:
        left: Opening quote character, or ``None`` for a dialect that does not
            quote identifiers.
        right: Closing quote character. Defaults to ``left``.

    Example:
        >>> IdentifierQuoter("[", "]").quote("users.first_name as name")
        '[users].[first_name] name'
    """

    def __init__(self, left: Optional[str], right: Optional[str] = None):
        self.left = left
        self.right = right if right is not None else left

    @property
    def enabled(self) -> bool:
        return bool(self.left)

    def quote(self, identifier: str) -> str:
        """Quote ``identifier``, returning expressions unchanged.

        Function calls and wildcards are never quoted, nor is anything that
        still contains more than one space after the ``as`` keyword has been
        removed. An alias after the identifier is kept verbatim.
        """
        if not self.enabled:
            return identifier

        if "(" in identifier or "*" in identifier:
            return identifier

        identifier = _WHITESPACE_RE.sub(" ", identifier)
        identifier = _AS_RE.sub(" ", identifier)

        if identifier.count(" ") > 1:
            return identifier

        alias = ""
        if " " in identifier:
            split_at = identifier.index(" ")
            identifier, alias = identifier[:split_at], identifier[split_at:]

        segments = identifier.split(".")
        return self.left + f"{self.right}.{self.left}".join(segments) + self.right + alias

    def strip(self, identifier: str) -> str:
        """Remove this dialect's quote characters from ``identifier``."""
        if not self.enabled:
            return identifier
        return identifier.replace(self.left, "").replace(self.right, "")
