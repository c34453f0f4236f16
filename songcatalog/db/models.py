"""ORM models for groups (artists) and their songs."""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Group(Base):
    """A group or artist. Shared by reference across all of its songs."""

    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Group {self.name}>"


class Song(Base):
    __tablename__ = "songs"
    __table_args__ = (
        UniqueConstraint("group_id", "title", name="uq_songs_group_title"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    group_id: Mapped[int] = mapped_column(ForeignKey("groups.id"), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    release_date: Mapped[Optional[date]] = mapped_column(Date, index=True, nullable=True)
    text: Mapped[str] = mapped_column(Text, default="")  # stanzas separated by a blank line
    link: Mapped[str] = mapped_column(String(1024), index=True, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    # Always loaded together with the song, the API returns it embedded
    group: Mapped[Group] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Song {self.id} {self.title}>"
