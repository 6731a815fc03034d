"""
Dean Edwards p,a,c,k,e,d unpacker.

Some embed pages hide their player setup inside

    eval(function(p,a,c,k,e,d){...}('payload',radix,count,'sym|tab'.split('|'),0,{}))

The fallback scanner unpacks such blocks so manifest URLs in them become
visible to a plain regex.
"""
from __future__ import annotations
import re

_PACKED_RE = re.compile(
    r"eval\(function\(p,a,c,k,e,[dr]\)\{.*?\}\('(.*?)',(\d+),(\d+),'(.*?)'\.split\('\|'\)",
    re.DOTALL,
)
_WORD_RE = re.compile(r"\b\w+\b")
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _decode(word: str, radix: int) -> int:
    if radix <= 36:
        return int(word, radix)
    val = 0
    for ch in word:
        digit = _DIGITS.index(ch)
        if digit >= radix:
            raise ValueError(word)
        val = val * radix + digit
    return val


def detect(text: str) -> bool:
    """Check if text contains packed JS."""
    return bool(_PACKED_RE.search(text))


def _unpack_match(match: re.Match) -> str:
    payload, radix_s, count_s, symtab_raw = match.groups()
    radix = int(radix_s)
    symtab = symtab_raw.split("|")
    symtab += [""] * (int(count_s) - len(symtab))

    def _replace(m: re.Match) -> str:
        word = m.group(0)
        try:
            idx = _decode(word, radix)
        except ValueError:
            return word
        return symtab[idx] if idx < len(symtab) and symtab[idx] else word

    # The payload is a JS string literal; undo the quote escaping first
    return _WORD_RE.sub(_replace, payload.replace("\\'", "'"))


def unpack_all(text: str) -> list[str]:
    """Unpack every packed block in `text`, in document order."""
    return [_unpack_match(m) for m in _PACKED_RE.finditer(text)]
