from datetime import date, datetime
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

class SongDetail(BaseModel):
    """Metadata returned by the enrichment API and by POST /info."""
    releaseDate: str = ""  # DD.MM.YYYY
    text: str = ""
    link: str = ""

    model_config = ConfigDict(extra='ignore')

    @field_validator('releaseDate', 'text', 'link', mode='before')
    @classmethod
    def _null_to_empty(cls, v):
        return "" if v is None else v

class FixtureRecord(BaseModel):
    """Shape of the local enrichment override file."""
    group: str
    song: str
    release_date: str = ""
    text: str = ""
    link: str = ""

class AddSongRequest(BaseModel):
    group: str = Field(..., min_length=1, examples=["Muse"])
    song: str = Field(..., min_length=1, examples=["Supermassive Black Hole"])

    model_config = ConfigDict(str_strip_whitespace=True)

class SongUpdate(BaseModel):
    """Partial update, only the supplied fields are applied."""
    group_id: Optional[int] = None
    title: Optional[str] = None
    release_date: Optional[str] = Field(None, description="DD.MM.YYYY")
    text: Optional[str] = Field(None, validation_alias=AliasChoices("text", "lyrics"))
    link: Optional[str] = None

    model_config = ConfigDict(extra='forbid')

class SongFilters(BaseModel):
    group: Optional[str] = None
    song: Optional[str] = None
    release_date: Optional[str] = None  # DD.MM.YYYY, exact match
    text: Optional[str] = None
    link: Optional[str] = None

    @field_validator('*', mode='before')
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

class GroupOut(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)

class SongOut(BaseModel):
    id: int
    group_id: int
    group: GroupOut
    title: str
    release_date: Optional[date] = None
    text: str = ""
    link: str = ""
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class SongTextPage(BaseModel):
    songId: int
    page: int
    text: List[str]
    total: int
    limit: int
    totalPage: int

class MessageResponse(BaseModel):
    message: str

class UpdateResponse(BaseModel):
    message: str
    song_id: int
