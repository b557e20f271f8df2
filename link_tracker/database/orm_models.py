from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):  # type: ignore[misc]
    pass


class User(Base):  # type: ignore[misc]
    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    user_links: Mapped[list["UserLink"]] = relationship(
        "UserLink",
        back_populates="user",
        lazy="selectin",
        passive_deletes=True,
    )


class Link(Base):  # type: ignore[misc]
    __tablename__ = "links"

    link_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    link_url: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    last_update_check: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    user_links: Mapped[list["UserLink"]] = relationship(
        "UserLink",
        back_populates="link",
        lazy="selectin",
        passive_deletes=True,
    )


class UserLink(Base):  # type: ignore[misc]
    __tablename__ = "userlinks"

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True
    )
    link_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("links.link_id", ondelete="RESTRICT"), primary_key=True
    )
    tags: Mapped[list[str]] = mapped_column(ARRAY(Text), default=list, nullable=False)
    filters: Mapped[list[str]] = mapped_column(ARRAY(Text), default=list, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="user_links", lazy="selectin")
    link: Mapped["Link"] = relationship("Link", back_populates="user_links", lazy="selectin")
