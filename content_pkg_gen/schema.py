"""
Schema and data-cache model consumed by the generator.

Both structures are produced by a source plugin and treated as read-only
here. `from_dict`/`to_dict` use the camelCase keys of the JSON snapshots
written in debug mode, so a snapshot can be replayed later.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

Document = dict[str, Any]


@dataclass(frozen=True)
class FieldDef:
    """A single field of a document type (used for type declarations only)."""

    name: str
    type: str = "string"
    required: bool = False
    description: str = ""

    @staticmethod
    def from_dict(d: dict) -> FieldDef:
        return FieldDef(
            name=d["name"],
            type=d.get("type", "string"),
            required=d.get("required", False),
            description=d.get("description", ""),
        )

    def to_dict(self) -> dict:
        return {"name": self.name, "type": self.type, "required": self.required, "description": self.description}


@dataclass(frozen=True)
class DocumentTypeDef:
    """A named document type of the content schema.

    Attributes:
        name: Type name, unique within a schema
        is_singleton: Whether exactly one document of this type exists
        hash: Changes whenever the shape of this type changes
        description: Optional documentation for the generated type
        fields: Optional field definitions
    """

    name: str
    is_singleton: bool = False
    hash: str = ""
    description: str = ""
    fields: tuple[FieldDef, ...] = ()

    @staticmethod
    def from_dict(d: dict) -> DocumentTypeDef:
        return DocumentTypeDef(
            name=d["name"],
            is_singleton=d.get("isSingleton", False),
            hash=d.get("hash", ""),
            description=d.get("description", ""),
            fields=tuple(FieldDef.from_dict(f) for f in d.get("fields", [])),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "isSingleton": self.is_singleton,
            "hash": self.hash,
            "description": self.description,
            "fields": [f.to_dict() for f in self.fields],
        }


@dataclass(frozen=True)
class SchemaDef:
    """The resolved content schema."""

    document_type_def_map: dict[str, DocumentTypeDef] = field(default_factory=dict)
    hash: str = ""

    @property
    def document_type_defs(self) -> list[DocumentTypeDef]:
        return list(self.document_type_def_map.values())

    @staticmethod
    def from_dict(d: dict) -> SchemaDef:
        type_defs = {name: DocumentTypeDef.from_dict({"name": name, **value}) for name, value in d.get("documentTypeDefMap", {}).items()}
        return SchemaDef(document_type_def_map=type_defs, hash=d.get("hash", ""))

    def to_dict(self) -> dict:
        return {
            "documentTypeDefMap": {name: doc_def.to_dict() for name, doc_def in self.document_type_def_map.items()},
            "hash": self.hash,
        }


@dataclass(frozen=True)
class CacheItem:
    """A fetched document together with its content fingerprint."""

    document: Document
    document_hash: str

    @staticmethod
    def from_dict(d: dict) -> CacheItem:
        return CacheItem(document=d["document"], document_hash=d["documentHash"])

    def to_dict(self) -> dict:
        return {"document": self.document, "documentHash": self.document_hash}


@dataclass(frozen=True)
class Cache:
    """One snapshot of fetched content."""

    cache_items_map: dict[str, CacheItem] = field(default_factory=dict)

    @property
    def documents(self) -> list[Document]:
        return [item.document for item in self.cache_items_map.values()]

    @staticmethod
    def from_dict(d: dict) -> Cache:
        return Cache(cache_items_map={key: CacheItem.from_dict(value) for key, value in d.get("cacheItemsMap", {}).items()})

    def to_dict(self) -> dict:
        return {"cacheItemsMap": {key: item.to_dict() for key, item in self.cache_items_map.items()}}
