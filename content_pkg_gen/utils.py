"""
Identifier helpers for the generated package.

Derives file names and JavaScript identifiers from document ids and
document type names.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

import inflection

if TYPE_CHECKING:
    from .schema import DocumentTypeDef

autogenerated_note = "NOTE This file is auto-generated by content_pkg_gen"

_LEADING_DIGIT = re.compile(r"^[0-9]")

# Word boundaries: "fooBar" -> "foo Bar", "HTMLParser" -> "HTML Parser"
_SPLIT_PATTERNS = (
    re.compile(r"([a-z0-9])([A-Z])"),
    re.compile(r"([A-Z])([A-Z][a-z])"),
)

# Characters outside this set become word breaks (underscores are kept)
DEFAULT_STRIP_PATTERN = re.compile(r"[^A-Za-z0-9_]")

_VALID_JS_VAR_NAME = re.compile(r"^(?![0-9])([a-zA-Z0-9_$]+)$")

# fmt: off
# Names that pass the identifier pattern but cannot be bound by an import
JS_RESERVED_WORDS = frozenset(
    {
        "arguments", "await", "break", "case", "catch", "class", "const", "continue", "debugger",
        "default", "delete", "do", "else", "enum", "eval", "export", "extends", "false", "finally",
        "for", "function", "if", "implements", "import", "in", "instanceof", "interface", "let",
        "new", "null", "package", "private", "protected", "public", "return", "static", "super",
        "switch", "this", "throw", "true", "try", "typeof", "var", "void", "while", "with", "yield",
    }
)
# fmt: on


def left_pad_with_underscore_if_starts_with_number(text: str) -> str:
    if _LEADING_DIGIT.match(text):
        return "_" + text
    return text


def id_to_file_name(document_id: str) -> str:
    """Convert a document id to the base name of its JSON file.

    Examples:
        "home" -> "home"
        "1-a" -> "_1-a"
        "blog/first-post" -> "blog__first-post"
    """
    return left_pad_with_underscore_if_starts_with_number(document_id).replace("/", "__")


def _split_into_words(text: str, strip_pattern: re.Pattern[str]) -> list[str]:
    """Split text into words on case boundaries and stripped characters."""
    for pattern in _SPLIT_PATTERNS:
        text = pattern.sub("\\1\0\\2", text)
    text = strip_pattern.sub("\0", text)
    return text.strip("\0").split("\0")


def _pascal_word(word: str, index: int) -> str:
    if not word:
        return ""
    first, rest = word[0], word[1:].lower()
    if index > 0 and "0" <= first <= "9":
        return f"_{first}{rest}"
    return f"{first.upper()}{rest}"


def camel_case(text: str, strip_pattern: re.Pattern[str] = DEFAULT_STRIP_PATTERN) -> str:
    """Convert text to camelCase.

    Examples:
        "my-post" -> "myPost"
        "helloWorld" -> "helloWorld"
        "_1-a" -> "_1A"
        "post__one" -> "post__one"

    Args:
        text: The text to convert
        strip_pattern: Characters matching this pattern are treated as word breaks

    Returns:
        camelCase string (empty if nothing survives stripping)
    """
    words = _split_into_words(text, strip_pattern)
    return "".join(word.lower() if index == 0 else _pascal_word(word, index) for index, word in enumerate(words))


def is_valid_js_var_name(name: str) -> bool:
    return _VALID_JS_VAR_NAME.match(name) is not None


class VariableNameAllocator:
    """Hands out unique import names for the documents of one generated module.

    Names derive from the document id. Ids that don't produce a valid
    identifier (e.g. non-latin alphabets) or that collide with an already
    allocated or reserved name fall back to `{type_name}{file_index}`.
    Names the module declares itself (its export) are passed as `reserved`.
    """

    def __init__(self, type_name: str, reserved: Iterable[str] = ()):
        self.type_name = type_name
        self.used_names: set[str] = set(reserved)

    def make_variable_name(self, document_id: str, file_index: int) -> str:
        candidate = camel_case(id_to_file_name(document_id))
        if is_valid_js_var_name(candidate) and candidate not in JS_RESERVED_WORDS and candidate not in self.used_names:
            return candidate
        return f"{self.type_name}{file_index}"

    def allocate(self, document_id: str, file_index: int) -> str:
        name = self.make_variable_name(document_id, file_index)
        self.used_names.add(name)
        return name


def lowercase_first_char(text: str) -> str:
    return text[:1].lower() + text[1:]


def uppercase_first_char(text: str) -> str:
    return text[:1].upper() + text[1:]


def get_data_variable_name(doc_def: DocumentTypeDef) -> str:
    """Name of the exported data constant for a document type.

    Examples:
        singleton "Page" -> "page"
        collection "Post" -> "allPosts"
    """
    if doc_def.is_singleton:
        return lowercase_first_char(inflection.singularize(doc_def.name))
    return "all" + uppercase_first_char(inflection.pluralize(doc_def.name))
