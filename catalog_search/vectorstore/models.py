"""Vector store data models."""

from typing import Any

from pydantic import BaseModel, Field

# Payload keys written on upsert and read back on search.
PAYLOAD_FIELDS = [
    "id",
    "text",
    "description",
    "external_source_name",
    "additional_metadata",
]

PRODUCT_TAG = "productid"
PAGE_TAG = "pagenumber"


def encode_tag(key: str, value: Any) -> str:
    """Render a ``key:value`` tag as stored in metadata text fields."""
    return f"{key}:{value}"


def decode_tag(tag: str, key: str) -> str | None:
    """Return the value of a ``key:value`` tag, or None if the key differs."""
    prefix, sep, value = tag.partition(":")
    if not sep or prefix != key:
        return None
    return value


class VectorRecord(BaseModel):
    """A record to store in the vector database.

    Attributes:
        id: Natural key of the source entity, unique within a collection.
        vector: The embedding vector.
        text: Indexed text.
        description: Free-form description (products carry the brand here).
        external_source_name: Structured tag used as the equality-filter key.
        additional_metadata: Secondary tag, e.g. ``pagenumber:7``.
    """

    id: str = Field(min_length=1, description="Unique record identifier")
    vector: list[float] = Field(description="Embedding vector")
    text: str = Field(default="", description="Indexed text")
    description: str = Field(default="", description="Record description")
    external_source_name: str = Field(
        default="",
        description="Structured tag, e.g. productid:42",
    )
    additional_metadata: str = Field(
        default="",
        description="Secondary metadata tag",
    )

    def to_payload(self) -> dict[str, Any]:
        """Payload stored alongside the vector."""
        return {
            "id": self.id,
            "text": self.text,
            "description": self.description,
            "external_source_name": self.external_source_name,
            "additional_metadata": self.additional_metadata,
        }


class SearchFilter(BaseModel):
    """Equality constraint on a record's ``external_source_name`` tag.

    Kept as a typed pair until the store boundary, where it is rendered
    with :meth:`encode`.
    """

    key: str = Field(min_length=1, description="Tag key, e.g. productid")
    value: str = Field(description="Tag value")

    @classmethod
    def for_product(cls, product_id: int | str) -> "SearchFilter":
        """Filter matching records tagged with the given product."""
        return cls(key=PRODUCT_TAG, value=str(product_id))

    def encode(self) -> str:
        return encode_tag(self.key, self.value)


class SearchResult(BaseModel):
    """Result from a vector similarity search.

    Attributes:
        id: Record identifier.
        score: Similarity score (higher is more similar).
        text: Indexed text.
        description: Record description.
        external_source_name: Structured tag.
        additional_metadata: Secondary tag.
    """

    id: str = Field(description="Record identifier")
    score: float = Field(description="Similarity score")
    text: str = Field(default="", description="Indexed text")
    description: str = Field(default="", description="Record description")
    external_source_name: str = Field(default="", description="Structured tag")
    additional_metadata: str = Field(default="", description="Secondary tag")

    @classmethod
    def from_payload(
        cls,
        score: float,
        payload: dict[str, Any],
        fallback_id: str = "",
    ) -> "SearchResult":
        """Build a result from a stored payload."""
        return cls(
            id=str(payload.get("id") or fallback_id),
            score=score,
            text=payload.get("text", ""),
            description=payload.get("description", ""),
            external_source_name=payload.get("external_source_name", ""),
            additional_metadata=payload.get("additional_metadata", ""),
        )
