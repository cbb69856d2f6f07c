"""Label helpers: camel-casing and English pluralization for table and field labels."""

import re
from typing import Iterable, Optional, Union

# Words (or patterns) that are the same in singular and plural form
UNCOUNTABLE = [
    "amoyese", "bison", "borghese", "bream", "breeches", "britches", "buffalo",
    "cantus", "carp", "chassis", "clippers", "cod", "coitus", "congoese",
    "contretemps", "corps", "debris", "deer", "diabetes", "djinn", "eland",
    "elk", "equipment", "faroese", "flounder", "foochowese", "gallows",
    "genevese", "geese", "genoese", "gilbertese", "graffiti", "headquarters",
    "herpes", "hijinks", "hottentotese", "information", "innings",
    "jackanapes", "kiplingese", "kongoese", "lucchese", "mackerel", "maltese",
    ".*?media", "metadata", "mews", "moose", "mumps", "nankingese", "news",
    "nexus", "niasese", "pekingese", "piedmontese", "pincers", "pistoiese",
    "pliers", "portuguese", "proceedings", "rabies", "rice", "rhinoceros",
    "salmon", "sarawakese", "scissors", "sea[- ]bass", "series", "shavese",
    "shears", "siemens", "species", "swine", "testes", "trousers", "trout",
    "tuna", "vermontese", "wenchowese", "whiting", "wildebeest", "yengeese",
]

# (pattern, replacement) pairs, first match wins
PLURAL_RULES = [
    (r"(s)tatus$", r"\1tatuses"),
    (r"(quiz)$", r"\1zes"),
    (r"^(ox)$", r"\1en"),
    (r"(matr|vert|ind)(ix|ex)$", r"\1ices"),
    (r"([ml])ouse$", r"\1ice"),
    (r"(x|ch|ss|sh|us|as|is|os)$", r"\1es"),
    (r"(shea|lea|loa|thie)f$", r"\1ves"),
    (r"(buffal|tomat|potat|ech|her|vet)o$", r"\1oes"),
    (r"([^aeiouy]|qu)y$", r"\1ies"),
    (r"(?:([^f])fe|([lre])f)$", r"\1\2ves"),
    (r"([ti])um$", r"\1a"),
    (r"sis$", "ses"),
    (r"move$", "moves"),
    (r"foot$", "feet"),
    (r"human$", "humans"),
    (r"tooth$", "teeth"),
    (r"(bu)s$", r"\1ses"),
    (r"(hive)$", r"\1s"),
    (r"(p)erson$", r"\1eople"),
    (r"(m)an$", r"\1en"),
    (r"(c)hild$", r"\1hildren"),
    (r"(alumn|bacill|cact|foc|fung|nucle|octop|radi|stimul|syllab|termin|vir)us$", r"\1i"),
    (r"us$", "uses"),
    (r"(alias)$", r"\1es"),
    (r"(ax|cris|test)is$", r"\1es"),
]

_COMPILED_RULES = [(re.compile(p, re.IGNORECASE), r) for p, r in PLURAL_RULES]
_UNCOUNTABLE_PATTERNS = [re.compile(word, re.IGNORECASE) for word in UNCOUNTABLE]


def camelize(
    value: str,
    separator: Optional[Union[str, Iterable[str]]] = None,
    preserve_white_space: bool = False,
    is_key: bool = False,
) -> str:
    """Convert a separated identifier into capitalized words.

    Args:
        value: Identifier such as ``order_items``
        separator: Separator(s) to split on (default ``_`` and ``-``)
        preserve_white_space: Keep the spaces between words (``Order Items``)
        is_key: Lower-case the first character (``orderItems``)

    Returns:
        The camelized string
    """
    if not value:
        return value or ""
    if separator is None:
        separators = ["_", "-"]
    elif isinstance(separator, str):
        separators = [separator]
    else:
        separators = list(separator)

    for sep in separators:
        value = value.replace(sep, " ")
    words = [word[:1].upper() + word[1:] for word in value.split(" ")]
    result = " ".join(words)

    if is_key:
        result = result[:1].lower() + result[1:]

    return result if preserve_white_space else result.replace(" ", "")


def pluralize(name: str) -> str:
    """Convert a word to its plural form."""
    if not name:
        return name
    if any(p.fullmatch(name) for p in _UNCOUNTABLE_PATTERNS):
        return name

    for pattern, replacement in _COMPILED_RULES:
        if pattern.search(name):
            return pattern.sub(replacement, name, count=1)

    # Already plural
    if name.endswith("s"):
        return name
    return name + "s"
