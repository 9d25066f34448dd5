import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Enum,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ..database import Base


class RoundState(str, enum.Enum):
    DRAFT = "draft"
    SUBMISSION_OPEN = "submission_open"
    VOTING_OPEN = "voting_open"
    CLOSED = "closed"


class ContentType(str, enum.Enum):
    URL = "URL"
    TEXT = "TEXT"
    IMAGE = "IMAGE"


class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    memberships = relationship("LeagueMember", back_populates="user")
    submissions = relationship("Submission", back_populates="user")


class League(Base):
    __tablename__ = "leagues"

    league_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    creator_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    start_date = Column(DateTime, nullable=False)
    number_of_rounds = Column(Integer, nullable=False)
    upvotes_per_user = Column(Integer, nullable=False)
    downvotes_per_user = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())

    creator = relationship("User")
    members = relationship(
        "LeagueMember",
        back_populates="league",
        cascade="all, delete-orphan",
    )
    rounds = relationship(
        "Round",
        back_populates="league",
        cascade="all, delete-orphan",
        order_by="Round.round_number",
    )

    __table_args__ = (
        CheckConstraint("number_of_rounds >= 1", name="ck_league_rounds"),
        CheckConstraint("upvotes_per_user >= 0", name="ck_league_upvotes"),
        CheckConstraint(
            "downvotes_per_user >= 0", name="ck_league_downvotes"
        ),
    )


class LeagueMember(Base):
    __tablename__ = "league_members"

    member_id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(
        Integer, ForeignKey("leagues.league_id"), nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    joined_at = Column(DateTime, server_default=func.now())

    league = relationship("League", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("league_id", "user_id", name="unique_league_user"),
    )


class Round(Base):
    __tablename__ = "rounds"

    round_id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(
        Integer, ForeignKey("leagues.league_id"), nullable=False
    )
    round_number = Column(Integer, nullable=False)
    theme = Column(String(255), nullable=False)
    submission_deadline = Column(DateTime, nullable=False)
    voting_deadline = Column(DateTime, nullable=False)
    state = Column(
        Enum(RoundState, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=RoundState.SUBMISSION_OPEN,
    )
    version = Column(Integer, nullable=False, default=1)

    league = relationship("League", back_populates="rounds")
    submissions = relationship(
        "Submission",
        back_populates="round",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint(
            "league_id", "round_number", name="unique_league_round_number"
        ),
        CheckConstraint("round_number >= 1", name="ck_round_number"),
    )

    @property
    def is_submission_open(self) -> bool:
        return self.state == RoundState.SUBMISSION_OPEN

    @property
    def is_voting_open(self) -> bool:
        return self.state == RoundState.VOTING_OPEN


class Submission(Base):
    __tablename__ = "submissions"

    sub_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    round_id = Column(Integer, ForeignKey("rounds.round_id"), nullable=False)
    content_type = Column(
        Enum(ContentType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    content = Column(Text, nullable=False)
    submitted_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    user = relationship("User", back_populates="submissions")
    round = relationship("Round", back_populates="submissions")
    votes = relationship("Vote", back_populates="submission")

    __table_args__ = (
        UniqueConstraint("user_id", "round_id", name="unique_user_round"),
    )


class Vote(Base):
    """One committed ledger row. Rows are only ever inserted."""

    __tablename__ = "votes"

    vote_id = Column(Integer, primary_key=True, autoincrement=True)
    round_id = Column(Integer, ForeignKey("rounds.round_id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    submission_id = Column(
        Integer, ForeignKey("submissions.sub_id"), nullable=False
    )
    value = Column(Integer, nullable=False)
    comment = Column(Text)
    voted_at = Column(DateTime, server_default=func.now())

    user = relationship("User")
    submission = relationship("Submission", back_populates="votes")


class VoteCommit(Base):
    __tablename__ = "vote_commits"

    commit_id = Column(Integer, primary_key=True, autoincrement=True)
    round_id = Column(Integer, ForeignKey("rounds.round_id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    committed_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("round_id", "user_id", name="unique_round_voter"),
    )
