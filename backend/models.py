from __future__ import annotations
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

class SectionPayload(BaseModel):
    slug: str = Field(..., min_length=1, max_length=64)
    title: str = ''
    content: str = ''
    highlights: List[str] = Field(default_factory=list)

class HistoryEntry(BaseModel):
    title: str = ''
    content: str = ''
    source: str
    instruction: str = ''
    notes: str = ''
    created_at: str

class GenerateRequest(BaseModel):
    listing: Dict[str, Any]

class RewriteRequest(BaseModel):
    listing: Dict[str, Any]
    sections: List[SectionPayload] = Field(..., min_length=1)
    slug: str = Field(..., min_length=1, max_length=64)
    instruction: str = Field(default='', max_length=2000)
    history: Dict[str, List[HistoryEntry]] = Field(default_factory=dict)

class GenerateResponse(BaseModel):
    sections: List[SectionPayload]
    full_copy: str
    fallback_used: bool = False
    history: Dict[str, List[HistoryEntry]] = Field(default_factory=dict)
    listing: Optional[Dict[str, Any]] = None

class RewriteResponse(BaseModel):
    section: SectionPayload
    sections: List[SectionPayload]
    full_copy: str
    history: Dict[str, List[HistoryEntry]] = Field(default_factory=dict)
