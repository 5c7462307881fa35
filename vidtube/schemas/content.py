# vidtube/schemas/content.py
from typing import Optional
from pydantic import BaseModel, Field


class ContentBody(BaseModel):
    """Body of comment and tweet create/update requests."""
    content: str = Field(..., min_length=1, max_length=5000)


class VideoUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)


class PlaylistCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: str = Field(..., min_length=1, max_length=5000)


class PlaylistUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=150)
    description: Optional[str] = Field(None, max_length=5000)
