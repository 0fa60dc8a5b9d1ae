"""DTOs for Polls app - Data Transfer Objects for cross-app communication."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ninja import Schema


@dataclass(frozen=True)
class PollOptionDTO:
    id: UUID
    text: str
    order_index: int
    vote_count: int = 0


@dataclass(frozen=True)
class PollDTO:
    id: UUID
    question: str
    description: str
    poll_type: str
    status: str
    is_anonymous: bool
    max_choices: Optional[int]
    require_explanation: bool
    end_date: Optional[datetime]
    created_by_id: Optional[UUID]
    created_by_name: Optional[str]
    created_at: datetime
    updated_at: datetime
    total_votes: int
    options: List[PollOptionDTO] = field(default_factory=list)
    has_voted: Optional[bool] = None


@dataclass(frozen=True)
class OptionResultDTO:
    option_id: UUID
    option_text: str
    vote_count: int
    percentage: float


@dataclass(frozen=True)
class PollStatisticsDTO:
    poll_id: UUID
    total_votes: int
    option_results: List[OptionResultDTO]


@dataclass(frozen=True)
class VoteHistoryDTO:
    poll_id: UUID
    poll_question: str
    poll_status: str
    option_id: UUID
    option_text: str
    explanation: str
    created_at: datetime


@dataclass(frozen=True)
class LocalizedPollDTO:
    id: UUID
    question: str
    description: str
    poll_type: str
    status: str
    is_anonymous: bool
    end_date: Optional[datetime]
    created_at: datetime
    language: str
    is_translated: bool
    options: List[PollOptionDTO] = field(default_factory=list)


# =============================================================================
# Request / response schemas
# =============================================================================

class PollCreateIn(Schema):
    question: str
    poll_type: str = 'single_choice'
    options: List[str]
    description: str = ''
    max_choices: Optional[int] = None
    is_anonymous: bool = True
    require_explanation: bool = False
    end_date: Optional[datetime] = None


class PollUpdateIn(Schema):
    question: Optional[str] = None
    description: Optional[str] = None
    poll_type: Optional[str] = None
    options: Optional[List[str]] = None
    max_choices: Optional[int] = None
    is_anonymous: Optional[bool] = None
    require_explanation: Optional[bool] = None
    end_date: Optional[datetime] = None


class VoteIn(Schema):
    option_ids: List[UUID]
    explanation: Optional[str] = None


class VoteOut(Schema):
    poll_id: UUID
    option_ids: List[UUID]


class HasVotedOut(Schema):
    poll_id: UUID
    has_voted: bool


class PollTranslationIn(Schema):
    language: str
    question: str
    description: str = ''


class PollTranslationUpdateIn(Schema):
    question: Optional[str] = None
    description: Optional[str] = None


class PollTranslationOut(Schema):
    id: UUID
    poll_id: UUID
    language: str
    question: str
    description: str
    created_at: datetime
    updated_at: datetime


class AutoTranslateIn(Schema):
    target_languages: List[str]


class AutoTranslateResultOut(Schema):
    language: str
    status: str
    translation: Optional[PollTranslationOut] = None
    error: Optional[str] = None
