"""Person name lists.

BibTeX name fields hold ` and `-separated names, each written as
"First von Last", "von Last, First" or "von Last, Jr, First". Brace groups
are atomic: an ` and ` or a comma inside braces belongs to the name. The
split into parts is delegated to `bibtexparser.customization.splitname`, and
each part is then converted from LaTeX with its braces removed.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

from bibtexparser.customization import splitname
from bibtexparser.latexenc import latex_to_unicode
from loguru import logger

from citekit.records.schema import Name


_AND_RE = re.compile(r"\s+and\s+")
# a braced letter at the start of a word, not the argument of an accent command
_LETTER_GROUP_RE = re.compile(r"""(?<![\w\\"'`^~=.])\{([^\W\d_])\}""")


def _brace_depths(text: str) -> List[int]:
    """Brace nesting level in front of each character."""
    depths = []
    depth = 0
    for char in text:
        depths.append(depth)
        if char == "{":
            depth += 1
        elif char == "}" and depth:
            depth -= 1
    return depths


def split_name_list(text: Optional[str]) -> List[str]:
    """Split on ` and ` outside braces."""
    if text is None or not text.strip():
        return []
    text = text.strip()
    depths = _brace_depths(text)

    tokens = []
    start = 0
    for match in _AND_RE.finditer(text):
        if depths[match.start()] == 0:
            tokens.append(text[start:match.start()])
            start = match.end()
    tokens.append(text[start:])
    return [token.strip() for token in tokens if token.strip()]


def _unbrace(words: List[str]) -> str:
    return latex_to_unicode(" ".join(words)).strip()


def parse_name(token: str) -> Name:
    """Parse one BibTeX name into CSL name parts."""
    # `{B}erg` only protects case; the letter decides whether the word is a particle
    token = _LETTER_GROUP_RE.sub(r"\1", token)
    try:
        parts = splitname(token, strict_mode=False)
    except ValueError as e:
        logger.debug(f"Falling back to literal family name for {token!r}: {e}")
        return Name(family=_unbrace([token]))

    return Name(
        family=_unbrace(parts.get("last", [])),
        given=_unbrace(parts.get("first", [])),
        non_dropping_particle=_unbrace(parts.get("von", [])),
        suffix=_unbrace(parts.get("jr", [])),
    )


def parse_names(text: Optional[str]) -> Tuple[Name, ...]:
    """Parse a ` and `-separated name list; `others` is dropped."""
    names = []
    for token in split_name_list(text):
        if token.lower() == "others":
            continue
        name = parse_name(token)
        if not name.is_empty:
            names.append(name)
    return tuple(names)


def name_family_part(name: Name) -> str:
    """Particles followed by the family name."""
    parts = [name.dropping_particle, name.non_dropping_particle, name.family]
    return " ".join(p for p in parts if p)


def format_name_family_first(name: Name) -> str:
    """`von Last, Jr, First`."""
    text = name_family_part(name)
    if name.suffix:
        text += f", {name.suffix}"
    if name.given:
        text = f"{text}, {name.given}" if text else name.given
    return text


def format_name_given_first(name: Name) -> str:
    """`First von Last Jr`."""
    parts = [name.given, name_family_part(name), name.suffix]
    return " ".join(p for p in parts if p)


def initials(given: Optional[str]) -> str:
    """`Jane Mary` -> `J. M.`; hyphenated names keep the hyphen."""
    if not given:
        return ""
    out = []
    for word in given.split():
        pieces = [p for p in word.split("-") if p]
        out.append("-".join(f"{p[0]}." for p in pieces))
    return " ".join(out)


def names_to_strings(names: Iterable[Name]) -> List[str]:
    return [format_name_given_first(n) for n in names]
