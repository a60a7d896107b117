"""
Text helpers for building WooCommerce slugs and descriptions.
"""

import re
import unicodedata
from typing import Iterable, Tuple

# Characters that NFKD does not decompose into an ASCII base letter
_TRANSLITERATIONS = {
    "ß": "ss",
    "ẞ": "ss",
    "æ": "ae",
    "Æ": "ae",
    "œ": "oe",
    "Œ": "oe",
    "ø": "o",
    "Ø": "o",
    "đ": "d",
    "Đ": "d",
    "ł": "l",
    "Ł": "l",
    "þ": "th",
    "Þ": "th",
    "×": "x",
}

# Percent-encoded NBSP, en dash and em dash; WordPress saves these as "-"
_DASH_OCTETS = ("%c2%a0", "%e2%80%93", "%e2%80%94")
_DASH_ENTITIES = re.compile(r"&(nbsp|#160|ndash|#8211|mdash|#8212);")


def remove_accents(value: str) -> str:
    """
    Strip diacritics the way WordPress ``remove_accents`` does for the default locale.

    Only letters with an ASCII base are touched; other scripts pass through.
    """
    out = []
    for char in value:
        char = _TRANSLITERATIONS.get(char, char)
        if char.isascii():
            out.append(char)
            continue
        base = "".join(c for c in unicodedata.normalize("NFKD", char) if not unicodedata.combining(c))
        out.append(base if base.isascii() else char)
    return "".join(out)


def utf8_uri_encode(value: str) -> str:
    """Percent-encode the UTF-8 bytes of every non-ASCII character (lowercase hex)."""
    return "".join(
        c if c.isascii() else "".join(f"%{b:02x}" for b in c.encode("utf-8"))
        for c in value
    )


def slugify(value: str) -> str:
    """
    Convert a display value into a term slug.

    Mirrors WordPress ``sanitize_title`` in save context: tags stripped,
    accents removed, lowercased, remaining non-ASCII percent-encoded, NBSP
    and dashes as well as dots and whitespace become "-", everything outside
    ``[%a-z0-9_-]`` dropped, dash runs collapsed.

    >>> slugify("Orange")
    'orange'
    >>> slugify("12x0,5L")
    '12x05l'
    >>> slugify("Лимон")
    '%d0%bb%d0%b8%d0%bc%d0%be%d0%bd'
    """
    value = re.sub(r"<[^>]+>", "", str(value))
    value = remove_accents(value)

    # Keep existing octets, drop stray percent signs
    value = re.sub(r"%([a-fA-F0-9][a-fA-F0-9])", r"---\1---", value)
    value = value.replace("%", "")
    value = re.sub(r"---([a-fA-F0-9][a-fA-F0-9])---", r"%\1", value)

    value = utf8_uri_encode(value.lower()).lower()
    for octet in _DASH_OCTETS:
        value = value.replace(octet, "-")
    value = _DASH_ENTITIES.sub("-", value)

    value = re.sub(r"&.+?;", "", value)
    value = value.replace(".", "-")
    value = re.sub(r"[^%a-z0-9 _-]", "", value)
    value = re.sub(r"\s+", "-", value)
    value = re.sub(r"-+", "-", value)
    return value.strip("-")


def combine_descriptions(title: str, intro: str, sections: Iterable[Tuple[str, str]]) -> str:
    """Build a parent description from (label, description) pairs of the source products."""
    parts = [f"<h2>{title}</h2>\n", f"<p>{intro}</p>\n\n"]
    for label, description in sections:
        parts.append(f"<h3>{label}</h3>\n")
        parts.append(f"{description or ''}\n\n")
        parts.append('<hr style="margin: 30px 0;">\n\n')
    return "".join(parts)
