"""Bulk seed file readers.

Seed files hold one JSON array. Elements are decoded one at a time so a
multi-gigabyte manual chunk export never has to fit in memory.
"""

import asyncio
import base64
import binascii
import json
import re
import sys
from abc import abstractmethod
from array import array
from collections.abc import AsyncIterator
from pathlib import Path
from typing import IO, Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from catalog_search.exceptions import ErrorCode, SeedSourceError
from catalog_search.logging_config import get_logger
from catalog_search.vectorstore.models import (
    PAGE_TAG,
    PRODUCT_TAG,
    VectorRecord,
    encode_tag,
)

logger = get_logger(__name__)

PRODUCTS_FILE = "products.json"
MANUAL_CHUNKS_FILE = "manual-chunks.json"

_WHITESPACE = " \t\r\n"

# Unread tails that may still grow into a number or literal after the next read
_NUMBER_TAIL = re.compile(r"[-+.eE0-9]*")
_LITERALS = ("true", "false", "null", "NaN", "Infinity", "-Infinity")

SeedT = TypeVar("SeedT", bound="SeedModel")


def decode_float32(raw: str | bytes) -> list[float]:
    """Decode little-endian float32 bytes (optionally base64 text) to floats."""
    if isinstance(raw, str):
        try:
            raw = base64.b64decode(raw, validate=True)
        except binascii.Error as e:
            raise ValueError(f"embedding is not valid base64: {e}") from e

    if len(raw) % 4:
        raise ValueError(f"embedding byte length {len(raw)} is not a multiple of 4")

    values = array("f")
    values.frombytes(raw)
    if sys.byteorder == "big":
        values.byteswap()
    return values.tolist()


class SeedModel(BaseModel):
    """Base for one element of a seed file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @abstractmethod
    def precomputed_vector(self) -> list[float] | None:
        """Vector shipped with the seed data, if any."""
        ...

    @abstractmethod
    def embedding_text(self) -> str:
        """Text to embed when no vector was shipped."""
        ...

    @abstractmethod
    def to_record(self, vector: list[float]) -> VectorRecord:
        ...


class ProductSeed(SeedModel):
    """Product entry from ``products.json``.

    The model name is the indexed text and the brand travels in the
    record description.
    """

    product_id: int = Field(alias="productId")
    model: str
    brand: str = ""
    name_embedding: list[float] | None = Field(default=None, alias="nameEmbedding")

    @field_validator("name_embedding", mode="before")
    @classmethod
    def _decode_embedding(cls, value: Any) -> Any:
        if isinstance(value, str | bytes):
            return decode_float32(value)
        return value

    def precomputed_vector(self) -> list[float] | None:
        return self.name_embedding or None

    def embedding_text(self) -> str:
        return self.model

    def to_record(self, vector: list[float]) -> VectorRecord:
        return VectorRecord(
            id=str(self.product_id),
            vector=vector,
            text=self.model,
            description=self.brand,
            external_source_name=encode_tag(PRODUCT_TAG, self.product_id),
        )


class ManualChunkSeed(SeedModel):
    """Manual passage from ``manual-chunks.json``."""

    chunk_id: str = Field(alias="chunkId")
    product_id: int = Field(alias="productId")
    page_number: int = Field(alias="pageNumber")
    text: str
    embedding: list[float] | None = None

    @field_validator("chunk_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("embedding", mode="before")
    @classmethod
    def _decode_embedding(cls, value: Any) -> Any:
        if isinstance(value, str | bytes):
            return decode_float32(value)
        return value

    def precomputed_vector(self) -> list[float] | None:
        return self.embedding or None

    def embedding_text(self) -> str:
        return self.text

    def to_record(self, vector: list[float]) -> VectorRecord:
        return VectorRecord(
            id=self.chunk_id,
            vector=vector,
            text=self.text,
            external_source_name=encode_tag(PRODUCT_TAG, self.product_id),
            additional_metadata=encode_tag(PAGE_TAG, self.page_number),
        )


class JSONArrayReader:
    """Incrementally decodes the elements of a top-level JSON array.

    Single pass: iterate :meth:`items` once.
    """

    def __init__(self, path: Path, read_size: int = 64 * 1024) -> None:
        self._path = path
        self._read_size = read_size
        self._decoder = json.JSONDecoder()
        self._buffer = ""
        self._pos = 0
        self._eof = False

    def _error(self, message: str) -> SeedSourceError:
        return SeedSourceError(
            f"{message} in {self._path}",
            code=ErrorCode.SEED_SOURCE_PARSE_ERROR,
            details={"path": str(self._path)},
        )

    async def _fill(self, fh: IO[str]) -> bool:
        chunk = await asyncio.to_thread(fh.read, self._read_size)
        if not chunk:
            self._eof = True
            return False
        self._buffer = self._buffer[self._pos :] + chunk
        self._pos = 0
        return True

    async def _peek(self, fh: IO[str]) -> str | None:
        """Next non-whitespace character, or None at end of file."""
        while True:
            while self._pos < len(self._buffer) and self._buffer[self._pos] in _WHITESPACE:
                self._pos += 1
            if self._pos < len(self._buffer):
                return self._buffer[self._pos]
            if self._eof or not await self._fill(fh):
                return None

    def _may_continue(self, pos: int) -> bool:
        """Whether the buffer from ``pos`` could be a value cut off by the read."""
        tail = self._buffer[pos:]
        if _NUMBER_TAIL.fullmatch(tail):
            return True
        return any(literal.startswith(tail) for literal in _LITERALS)

    def _truncated(self, error: json.JSONDecodeError) -> bool:
        if error.msg.startswith("Unterminated string"):
            return True
        if error.msg.startswith("Invalid \\uXXXX escape"):
            return len(self._buffer) - error.pos < 6
        return self._may_continue(error.pos)

    async def _decode(self, fh: IO[str]) -> Any:
        while True:
            try:
                value, end = self._decoder.raw_decode(self._buffer, self._pos)
            except json.JSONDecodeError as e:
                if self._eof or not self._truncated(e) or not await self._fill(fh):
                    raise self._error(f"Malformed JSON element: {e.msg}") from e
                continue

            # "1." or "2e" at the buffer edge decodes as a shorter number.
            is_number = isinstance(value, int | float) and not isinstance(value, bool)
            if is_number and not self._eof and self._may_continue(end):
                if await self._fill(fh):
                    continue

            self._pos = end
            return value

    async def items(self) -> AsyncIterator[Any]:
        """Yield each array element in file order.

        Raises:
            SeedSourceError: If the file is missing or not a JSON array.
        """
        if not self._path.is_file():
            raise SeedSourceError(
                f"Seed file not found: {self._path}",
                code=ErrorCode.SEED_SOURCE_NOT_FOUND,
                details={"path": str(self._path)},
            )

        with self._path.open("r", encoding="utf-8-sig") as fh:
            if await self._peek(fh) != "[":
                raise self._error("Expected a JSON array")
            self._pos += 1

            if await self._peek(fh) == "]":
                self._pos += 1
            else:
                while True:
                    yield await self._decode(fh)

                    separator = await self._peek(fh)
                    if separator == ",":
                        self._pos += 1
                        continue
                    if separator == "]":
                        self._pos += 1
                        break
                    raise self._error("Expected ',' or ']' after array element")

            if await self._peek(fh) is not None:
                raise self._error("Unexpected content after JSON array")


async def read_seed_file(
    path: Path,
    model: type[SeedT],
) -> AsyncIterator[SeedT]:
    """Stream validated seed entries from a JSON array file.

    Args:
        path: Seed file path.
        model: Seed model each element is validated against.

    Yields:
        Parsed seed entries in file order.

    Raises:
        SeedSourceError: On a missing file, malformed JSON or an invalid entry.
    """
    logger.info(f"Reading seed file {path}", extra={"seed_model": model.__name__})
    index = 0
    async for element in JSONArrayReader(path).items():
        try:
            yield model.model_validate(element)
        except PydanticValidationError as e:
            raise SeedSourceError(
                f"Invalid {model.__name__} at index {index} in {path}",
                code=ErrorCode.SEED_SOURCE_PARSE_ERROR,
                details={"path": str(path), "index": index, "errors": e.errors()},
            ) from e
        index += 1


def read_products(data_dir: Path) -> AsyncIterator[ProductSeed]:
    """Stream products from ``products.json`` in ``data_dir``."""
    return read_seed_file(data_dir / PRODUCTS_FILE, ProductSeed)


def read_manual_chunks(data_dir: Path) -> AsyncIterator[ManualChunkSeed]:
    """Stream manual chunks from ``manual-chunks.json`` in ``data_dir``."""
    return read_seed_file(data_dir / MANUAL_CHUNKS_FILE, ManualChunkSeed)
