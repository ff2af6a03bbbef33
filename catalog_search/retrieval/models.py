"""Retrieval data models."""

from pydantic import BaseModel, Field


class ProductResult(BaseModel):
    """A product matched by semantic search.

    Attributes:
        product_id: Catalog product id.
        brand: Product brand.
        model: Product model name.
        score: Relevance score (higher is more relevant).
    """

    product_id: int = Field(description="Catalog product id")
    brand: str = Field(default="", description="Product brand")
    model: str = Field(description="Product model name")
    score: float = Field(description="Relevance score")


class ManualChunkResult(BaseModel):
    """A product manual passage matched by semantic search.

    Attributes:
        chunk_id: Manual chunk id.
        product_id: Product the manual belongs to, when tagged.
        page_number: Page the passage was taken from, when tagged.
        text: Passage text.
        score: Relevance score (higher is more relevant).
    """

    chunk_id: str = Field(description="Manual chunk id")
    product_id: int | None = Field(default=None, description="Owning product")
    page_number: int | None = Field(default=None, description="Source page")
    text: str = Field(description="Passage text")
    score: float = Field(description="Relevance score")
