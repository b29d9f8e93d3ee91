"""Documents, child relationships and index schemas built on top of bags."""

from __future__ import annotations

from dataclasses import dataclass, field

from index_feeder.index.types import FULL_TEXT_FIELD_NAME, is_full_text_name
from index_feeder.model.bag import DataBag


@dataclass
class Relationship:
    """A child record nested under a document."""

    type: str
    bag: DataBag = field(default_factory=DataBag)


@dataclass
class Document:
    """A bag of fields plus metadata and optional child relationships."""

    name: str
    bag: DataBag = field(default_factory=DataBag)
    title: str = ""
    relationships: list[Relationship] = field(default_factory=list)

    def add_relationship(self, relationship: Relationship) -> Relationship:
        self.relationships.append(relationship)
        return relationship

    def relationships_of_type(self, type_name: str) -> list[Relationship]:
        return [relationship for relationship in self.relationships if relationship.type == type_name]


@dataclass
class Schema(Document):
    """Index schema view of a document.

    The unique key and the copyField rules are derived from the bag each time
    they are requested; nothing beyond the bag itself is stored.
    """

    name: str = "Index Schema"

    @property
    def unique_key(self) -> str | None:
        primary_key = self.bag.primary_key_field
        return primary_key.name if primary_key is not None else None

    @property
    def copy_fields(self) -> list[tuple[str, str]]:
        """Return ``(source, dest)`` pairs for every full-text named field, in bag order."""
        return [
            (data_field.name, FULL_TEXT_FIELD_NAME) for data_field in self.bag if is_full_text_name(data_field.name)
        ]
