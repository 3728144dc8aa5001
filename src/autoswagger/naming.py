"""Name conversions used when guessing class names and describing parameters."""

import re

IRREGULAR_SINGULARS = {
    "people": "person",
    "men": "man",
    "women": "woman",
    "children": "child",
    "teeth": "tooth",
    "feet": "foot",
    "mice": "mouse",
    "geese": "goose",
    "data": "datum",
    "media": "medium",
    "indices": "index",
    "matrices": "matrix",
    "vertices": "vertex",
}

UNCOUNTABLE = {"equipment", "information", "rice", "money", "species", "series", "news", "status", "metadata"}

SINGULAR_RULES = [
    (re.compile(r"(quiz)zes$", re.I), r"\1"),
    (re.compile(r"(matr|vert|ind)ices$", re.I), r"\1ex"),
    (re.compile(r"(alias|status|bus|address)es$", re.I), r"\1"),
    (re.compile(r"(x|ch|ss|sh|zz)es$", re.I), r"\1"),
    (re.compile(r"([^aeiouy]|qu)ies$", re.I), r"\1y"),
    (re.compile(r"(archive|cave|curve|dove|drive|glove|grave|groove|hive|move|nerve|olive|serve|sleeve|slave|stove|tive|valve|wave)s$", re.I), r"\1"),
    (re.compile(r"(kni|wi|li)ves$", re.I), r"\1fe"),
    (re.compile(r"(lea|loa|thie|shea)ves$", re.I), r"\1f"),
    (re.compile(r"([lr])ves$", re.I), r"\1f"),
    (re.compile(r"([^f])ves$", re.I), r"\1fe"),
    (re.compile(r"(movie|shoe)s$", re.I), r"\1"),
    (re.compile(r"(o)es$", re.I), r"\1"),
    (re.compile(r"(analy|ba|diagno|parenthe|progno|synop|the)ses$", re.I), r"\1sis"),
    (re.compile(r"([ti])a$", re.I), r"\1um"),
    (re.compile(r"(ss|us|is)$", re.I), r"\1"),
    (re.compile(r"s$", re.I), ""),
]


def singularize(word: str) -> str:
    """Singular form of an English noun; ``camelCase``/``snake_case`` keep their prefix."""
    match = re.match(r"^(.*?)([A-Za-z]+)$", word)
    if not match:
        return word
    prefix, last = match.groups()
    # only the last word of postId / post_ids changes
    parts = re.findall(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])", last)
    head, tail = (last[: -len(parts[-1])], parts[-1]) if parts else ("", last)

    lower = tail.lower()
    if lower in UNCOUNTABLE:
        return word
    if lower in IRREGULAR_SINGULARS:
        singular = IRREGULAR_SINGULARS[lower]
        singular = singular.capitalize() if tail[0].isupper() else singular
        return prefix + head + singular
    for pattern, replacement in SINGULAR_RULES:
        if pattern.search(tail):
            return prefix + head + pattern.sub(replacement, tail, count=1)
    return word


def is_plural(word: str) -> bool:
    return singularize(word) != word


def snake_case(name: str) -> str:
    name = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name).lower()


def studly_case(name: str) -> str:
    """``blog_post`` / ``blog-post`` / ``blogPost`` -> ``BlogPost``."""
    words = re.split(r"[_\-\s]+", snake_case(name))
    return "".join(word.capitalize() for word in words if word)


def humanize(name: str) -> str:
    return snake_case(name).replace("_", " ")
