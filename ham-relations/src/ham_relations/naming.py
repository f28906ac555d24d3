"""
Naming conventions shared by entities and the relation resolver.

Every function here is pure and deterministic: table, key and join-table names
derived from them end up in SQL, so the casing and separator rules must not
drift.

    snake("BlogPost")                 -> "blog_post"
    snake("authorName")               -> "author_name"
    plural("BlogPost")                -> "BlogPosts"
    table_name_for("BlogPost")        -> "blog_posts"
    joining_table(Tag, Post)          -> "post_tag"
"""
from __future__ import annotations

import re
from typing import Any

import inflect

from .exceptions import NamingInferenceError

_LOWER_RE = re.compile(r"[a-z]+")
_WORD_START_RE = re.compile(r"(^|\s)(\S)")
_WHITESPACE_RE = re.compile(r"\s+")
_BEFORE_UPPER_RE = re.compile(r"(.)(?=[A-Z])")
_STUDLY_TAIL_RE = re.compile(r"^(.*?)([A-Z]?[a-z0-9]*)$")

_inflector = inflect.engine()


def snake(value: str, delimiter: str = "_") -> str:
    """
    Convert a StudlyCase / camelCase / spaced string to snake_case.

    Words separated by whitespace are capitalised and glued together first, then
    a delimiter is inserted before every ASCII capital that follows another
    character. Strings made only of lowercase ASCII letters pass through.
    """
    if not isinstance(value, str):
        raise NamingInferenceError(f"Cannot snake-case non-string value {value!r}")

    if not _LOWER_RE.fullmatch(value):
        value = _WORD_START_RE.sub(lambda m: m.group(1) + m.group(2).upper(), value)
        value = _WHITESPACE_RE.sub("", value)
        value = _BEFORE_UPPER_RE.sub(lambda m: m.group(1) + delimiter, value).lower()

    if not value.isidentifier():
        raise NamingInferenceError(f"Snake-cased name {value!r} is not a valid identifier")
    return value


def plural(value: str) -> str:
    """Pluralise the last word of a StudlyCase or snake_case name."""
    if not value:
        raise NamingInferenceError("Cannot pluralise an empty name")

    if "_" in value:
        head, _, tail = value.rpartition("_")
        return f"{head}_{_plural_word(tail)}" if tail else value

    head, tail = _STUDLY_TAIL_RE.match(value).groups()
    if not tail:
        return value
    return head + _plural_word(tail)


def _plural_word(word: str) -> str:
    result = _inflector.plural(word.lower())
    # keep the leading capital of StudlyCase words
    if word[:1].isupper():
        result = result[:1].upper() + result[1:]
    return result


def class_basename(obj: Any) -> str:
    """Class name without module path for a class or an instance of one."""
    cls = obj if isinstance(obj, type) else type(obj)
    return cls.__name__


def table_name_for(name: str) -> str:
    """Conventional table name for an entity class name: ``BlogPost`` -> ``blog_posts``."""
    return snake(plural(name))


def foreign_key_for(name: str, key_name: str = "id") -> str:
    """Conventional foreign key column for an entity class name: ``User`` -> ``user_id``."""
    return f"{snake(name)}_{key_name}"


def joining_table(first: Any, second: Any) -> str:
    """
    Name of the many-to-many join table for two entities.

    Both class basenames are snake-cased and sorted, so the same name comes out
    whichever side declares the relation.
    """
    models = sorted([snake(class_basename(first)), snake(class_basename(second))])
    return "_".join(models).lower()


def qualify(table: str, column: str) -> str:
    """Prefix a column with its table name: ``("posts", "user_id")`` -> ``posts.user_id``."""
    return f"{table}.{column}"


def unqualify(column: str) -> str:
    return column.rsplit(".", 1)[-1]
