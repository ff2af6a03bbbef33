"""Embedding data models."""

from pydantic import BaseModel, Field, computed_field


class EmbeddingResult(BaseModel):
    """One embedded text.

    The vector is never empty; its length is the model's dimension.
    """

    text: str
    embedding: list[float] = Field(min_length=1)
    model: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def dimensions(self) -> int:
        return len(self.embedding)
