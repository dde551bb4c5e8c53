"""Templates with ``{name}`` placeholders.

A :class:`Template` can both *match* a string (capturing the text that
lines up with each placeholder) and *render* a string from captured
values.  Mappings use one template to pick secret keys and another to
name the environment variables they become::

    key = Template("{field}")
    env_var = Template("DB_{field}")
    env_var.render(key.match("db_user"))  # -> "DB_db_user"
"""

from __future__ import annotations

import re
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from vault_inject.errors import DuplicateParameterError

# Lazily finds the literal text before each ``{ name }`` placeholder.
_PLACEHOLDER_RE = re.compile(r"(.*?)(\{\s*([a-zA-Z][a-zA-Z0-9_-]*)\s*\})", re.DOTALL)


class Param(str):
    """A named placeholder piece (distinguished from literal ``str`` pieces)."""

    def __repr__(self) -> str:
        return f"Param({str.__repr__(self)})"


Piece = Union[str, Param]


class Template:
    """A compiled pattern string such as ``"foo_{bar}"``.

    Parameters
    ----------
    pattern:
        Source string.  Placeholder names must start with a letter and may
        contain letters, digits, ``_`` and ``-``.  Each name may appear at
        most once.
    """

    __slots__ = ("_source", "_pieces", "_names", "_regex")

    def __init__(self, pattern: str) -> None:
        pieces: List[Piece] = []
        seen: set[str] = set()
        last_idx = 0
        for m in _PLACEHOLDER_RE.finditer(pattern):
            literal, name = m.group(1), m.group(3)
            if name in seen:
                raise DuplicateParameterError(name, pattern)
            seen.add(name)
            if literal:
                pieces.append(literal)
            pieces.append(Param(name))
            last_idx = m.end(2)
        pieces.append(pattern[last_idx:])

        # Group names in ``re`` must be identifiers, so captures are
        # positional and mapped back to names in order.
        regex_parts: List[str] = []
        names: List[str] = []
        for piece in pieces:
            if isinstance(piece, Param):
                regex_parts.append("(.+?)")
                names.append(str(piece))
            else:
                regex_parts.append(re.escape(piece))

        self._source = pattern
        self._pieces: Tuple[Piece, ...] = tuple(pieces)
        self._names: Tuple[str, ...] = tuple(names)
        self._regex = re.compile("".join(regex_parts), re.DOTALL)

    @classmethod
    def compile(cls, pattern: str) -> Template:
        """Alias for the constructor."""
        return cls(pattern)

    # ── introspection ───────────────────────────────────────────────

    @property
    def source(self) -> str:
        return self._source

    @property
    def pieces(self) -> Tuple[Piece, ...]:
        return self._pieces

    @property
    def params(self) -> FrozenSet[str]:
        """Names of all placeholders in this template."""
        return frozenset(self._names)

    @property
    def is_literal(self) -> bool:
        """``True`` if the template has no placeholders."""
        return not self._names

    # ── matching / rendering ────────────────────────────────────────

    def match(self, text: str) -> Optional[Dict[str, str]]:
        """Match the whole of *text*, returning the captured values.

        Returns ``None`` if *text* cannot be matched, for instance when a
        literal delimiter is missing or a placeholder would have to capture
        nothing.
        """
        m = self._regex.fullmatch(text)
        if m is None:
            return None
        return dict(zip(self._names, m.groups()))

    def render(self, captures: Optional[Mapping[str, str]] = None) -> str:
        """Build a string from *captures*.

        Placeholders without a capture render as an empty string.
        """
        captures = captures or {}
        out: List[str] = []
        for piece in self._pieces:
            if isinstance(piece, Param):
                out.append(captures.get(str(piece), ""))
            else:
                out.append(piece)
        return "".join(out)

    def params_subset_of(self, other: Template) -> bool:
        """Can this template be rendered from *other*'s captures without gaps?"""
        return self.params <= other.params

    # ── dunder ──────────────────────────────────────────────────────

    def _key(self) -> Tuple[Tuple[bool, str], ...]:
        return tuple((isinstance(p, Param), str(p)) for p in self._pieces)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Template):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return self._source

    def __repr__(self) -> str:
        return f"Template({self._source!r})"
