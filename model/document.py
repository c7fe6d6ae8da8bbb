# model/document.py
from typing import List, Optional
from pydantic import BaseModel
from core.entities import BBox, TextChunk


class BBoxModel(BaseModel):
    x: float
    y: float
    width: float
    height: float


class ChunkModel(BaseModel):
    """Wire/storage shape of a TextChunk."""

    chunkIndex: int
    text: str
    pageNum: int
    bbox: BBoxModel
    fontName: str = ""
    fontSize: float = 0.0
    isHeading: bool = False
    isBold: bool = False
    confidence: float = 1.0
    charStart: int
    charEnd: int
    sectionName: Optional[str] = None


class DocumentChunks(BaseModel):
    documentId: str
    chunks: List[ChunkModel]


def chunk_to_model(ch: TextChunk) -> ChunkModel:
    return ChunkModel(
        chunkIndex=ch.chunk_index,
        text=ch.text,
        pageNum=ch.page_num,
        bbox=BBoxModel(x=ch.bbox.x, y=ch.bbox.y, width=ch.bbox.width, height=ch.bbox.height),
        fontName=ch.font_name,
        fontSize=ch.font_size,
        isHeading=ch.is_heading,
        isBold=ch.is_bold,
        confidence=ch.confidence,
        charStart=ch.char_start,
        charEnd=ch.char_end,
        sectionName=ch.section_name,
    )


def model_to_chunk(m: ChunkModel) -> TextChunk:
    return TextChunk(
        chunk_index=m.chunkIndex,
        text=m.text,
        page_num=m.pageNum,
        bbox=BBox(x=m.bbox.x, y=m.bbox.y, width=m.bbox.width, height=m.bbox.height),
        font_name=m.fontName,
        font_size=m.fontSize,
        is_heading=m.isHeading,
        is_bold=m.isBold,
        char_start=m.charStart,
        char_end=m.charEnd,
        confidence=m.confidence,
        section_name=m.sectionName,
    )
