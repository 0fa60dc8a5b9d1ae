"""
Community poll services: lifecycle (draft -> published -> closed), voting
and results.

Ownership violations raise PermissionDenied; invalid input or state raises
ValueError.
"""
import logging
from typing import Iterable, List, Optional

from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from apps.core.task_service import TaskService
from apps.governance.audit_service import AuditAction, log_action
from .dtos import OptionResultDTO, PollDTO, PollOptionDTO, PollStatisticsDTO, VoteHistoryDTO
from .models import Poll, PollOption, PollStatus, PollType, Vote

logger = logging.getLogger(__name__)

MIN_OPTIONS = 2
UPDATABLE_FIELDS = ('question', 'description', 'poll_type', 'is_anonymous', 'max_choices',
                    'require_explanation', 'end_date')
# An explicit None clears these
CLEARABLE_FIELDS = ('max_choices', 'end_date')


def option_dtos(poll: Poll) -> List[PollOptionDTO]:
    options = poll.options.annotate(vote_count=Count('votes')).order_by('order_index')
    return [
        PollOptionDTO(id=o.id, text=o.text, order_index=o.order_index, vote_count=o.vote_count)
        for o in options
    ]


def count_voters(poll: Poll) -> int:
    """Unique users who voted; a multiple-choice ballot counts once."""
    return poll.votes.values('user_id').distinct().count()


def to_poll_dto(poll: Poll, user=None) -> PollDTO:
    creator = poll.created_by
    return PollDTO(
        id=poll.id,
        question=poll.question,
        description=poll.description,
        poll_type=poll.poll_type,
        status=poll.status,
        is_anonymous=poll.is_anonymous,
        max_choices=poll.max_choices,
        require_explanation=poll.require_explanation,
        end_date=poll.end_date,
        created_by_id=poll.created_by_id,
        created_by_name=creator.display_name if creator else None,
        created_at=poll.created_at,
        updated_at=poll.updated_at,
        total_votes=count_voters(poll),
        options=option_dtos(poll),
        has_voted=has_user_voted(poll.id, user.id) if user is not None else None,
    )


def _clean_options(options: Iterable[str]) -> List[str]:
    cleaned = [(o or '').strip() for o in options or []]
    if any(not o for o in cleaned):
        raise ValueError("Poll options cannot be empty")
    if len(cleaned) < MIN_OPTIONS:
        raise ValueError("At least 2 options are required")
    return cleaned


def _validate_max_choices(poll_type: str, max_choices: Optional[int], option_count: int) -> Optional[int]:
    if poll_type == PollType.SINGLE_CHOICE:
        return None
    if max_choices is None:
        return None
    if max_choices < 1:
        raise ValueError("Invalid max_choices value")
    if max_choices > option_count:
        raise ValueError("Maximum choices cannot exceed number of options")
    return max_choices


def _validate_end_date(end_date) -> None:
    if end_date is not None and end_date <= timezone.now():
        raise ValueError("Voting deadline must be in the future")


def _require_creator(poll: Poll, user, action: str) -> None:
    if poll.created_by_id != user.id:
        raise PermissionDenied(f"Only poll creator can {action}")


# =============================================================================
# Lifecycle
# =============================================================================

def create_poll(
    *,
    question: str,
    options: Iterable[str],
    created_by,
    poll_type: str = PollType.SINGLE_CHOICE,
    description: str = '',
    max_choices: Optional[int] = None,
    is_anonymous: bool = True,
    require_explanation: bool = False,
    end_date=None,
) -> Poll:
    """Create a draft poll with its options."""
    question = (question or '').strip()
    if not question:
        raise ValueError("Poll question is required")
    if poll_type not in PollType.values:
        raise ValueError(f"Invalid poll type: {poll_type}")

    option_texts = _clean_options(options)
    max_choices = _validate_max_choices(poll_type, max_choices, len(option_texts))
    _validate_end_date(end_date)

    with transaction.atomic():
        poll = Poll.objects.create(
            question=question,
            description=description or '',
            poll_type=poll_type,
            max_choices=max_choices,
            is_anonymous=is_anonymous,
            require_explanation=require_explanation,
            end_date=end_date,
            created_by=created_by,
        )
        PollOption.objects.bulk_create([
            PollOption(poll=poll, text=text, order_index=index)
            for index, text in enumerate(option_texts)
        ])

    log_action(
        action=AuditAction.CREATE,
        entity_type="Poll",
        entity_id=poll.id,
        entity_label=poll.question,
        user=created_by,
        details={"options": len(option_texts), "poll_type": poll_type},
    )
    logger.info(f"Poll created: {poll.id}")
    return poll


def publish_poll(poll: Poll, user) -> Poll:
    _require_creator(poll, user, "publish")
    if poll.status != PollStatus.DRAFT:
        raise ValueError("Only draft polls can be published")

    poll.status = PollStatus.PUBLISHED
    poll.save(update_fields=['status', 'updated_at'])

    log_action(
        action=AuditAction.PUBLISH,
        entity_type="Poll",
        entity_id=poll.id,
        entity_label=poll.question,
        user=user,
    )

    try:
        TaskService.send_poll_notification(poll.id)
    except Exception as e:
        # Publication stands even when owners cannot be notified
        logger.warning(f"Failed to send WhatsApp notification for poll {poll.id}: {e}")

    return poll


def close_poll(poll: Poll, user) -> Poll:
    _require_creator(poll, user, "close")
    if poll.status != PollStatus.PUBLISHED:
        raise ValueError("Only published polls can be closed")

    poll.status = PollStatus.CLOSED
    poll.save(update_fields=['status', 'updated_at'])

    log_action(
        action=AuditAction.CLOSE,
        entity_type="Poll",
        entity_id=poll.id,
        entity_label=poll.question,
        user=user,
        details={"total_votes": count_voters(poll)},
    )
    return poll


def update_poll(poll: Poll, user, data: dict) -> Poll:
    """
    Edit a draft poll. Options are replaced only when at least two are
    supplied. Keys absent from data are left alone.
    """
    _require_creator(poll, user, "update")
    if poll.status != PollStatus.DRAFT:
        raise ValueError("Only draft polls can be updated")

    changes = {
        k: v for k, v in data.items()
        if k in UPDATABLE_FIELDS and (v is not None or k in CLEARABLE_FIELDS)
    }
    if 'question' in changes:
        changes['question'] = changes['question'].strip()
        if not changes['question']:
            raise ValueError("Poll question is required")
    if 'poll_type' in changes and changes['poll_type'] not in PollType.values:
        raise ValueError(f"Invalid poll type: {changes['poll_type']}")
    if 'end_date' in changes:
        _validate_end_date(changes['end_date'])

    new_options = data.get('options')
    replace_options = new_options is not None and len(new_options) >= MIN_OPTIONS
    option_texts = _clean_options(new_options) if replace_options else None

    for key, value in changes.items():
        setattr(poll, key, value)

    option_count = len(option_texts) if option_texts else poll.options.count()
    poll.max_choices = _validate_max_choices(poll.poll_type, poll.max_choices, option_count)

    with transaction.atomic():
        poll.save()
        if option_texts:
            poll.options.all().delete()
            PollOption.objects.bulk_create([
                PollOption(poll=poll, text=text, order_index=index)
                for index, text in enumerate(option_texts)
            ])

    log_action(
        action=AuditAction.UPDATE,
        entity_type="Poll",
        entity_id=poll.id,
        entity_label=poll.question,
        user=user,
        details={"fields": sorted(changes), "options_replaced": bool(option_texts)},
    )
    return poll


def delete_poll(poll: Poll, user) -> None:
    _require_creator(poll, user, "delete")
    if poll.status != PollStatus.DRAFT:
        raise ValueError("Only draft polls can be deleted")

    poll_id, question = poll.id, poll.question
    poll.delete()

    log_action(
        action=AuditAction.DELETE,
        entity_type="Poll",
        entity_id=poll_id,
        entity_label=question,
        user=user,
    )


# =============================================================================
# Voting
# =============================================================================

def cast_vote(poll: Poll, user, option_ids: Iterable, explanation: Optional[str] = None) -> List[Vote]:
    """
    Record one ballot. Single-choice polls take exactly one option;
    multiple-choice polls take up to max_choices. A user votes once per poll.
    """
    option_ids = list(dict.fromkeys(str(o) for o in option_ids or []))

    with transaction.atomic():
        poll = Poll.objects.select_for_update().get(id=poll.id)

        if poll.status != PollStatus.PUBLISHED:
            raise ValueError("Poll is not published")
        if poll.is_expired:
            raise ValueError("Voting deadline has passed")
        if Vote.objects.filter(poll=poll, user=user).exists():
            raise ValueError("User has already voted on this poll")

        if not option_ids:
            raise ValueError("At least one option must be selected")
        if poll.poll_type == PollType.SINGLE_CHOICE and len(option_ids) != 1:
            raise ValueError("Single choice polls require exactly one selection")
        if poll.poll_type == PollType.MULTIPLE_CHOICE and poll.max_choices and len(option_ids) > poll.max_choices:
            raise ValueError(f"You can select at most {poll.max_choices} options")

        options = {str(o.id): o for o in poll.options.filter(id__in=option_ids)}
        if len(options) != len(option_ids):
            raise ValueError("Invalid option IDs provided")

        explanation = (explanation or '').strip()
        if poll.require_explanation and not explanation:
            raise ValueError("An explanation is required for this poll")

        try:
            votes = Vote.objects.bulk_create([
                Vote(poll=poll, option=options[option_id], user=user, explanation=explanation)
                for option_id in option_ids
            ])
        except IntegrityError:
            raise ValueError("User has already voted on this poll")

    log_action(
        action=AuditAction.VOTE,
        entity_type="Poll",
        entity_id=poll.id,
        entity_label=poll.question,
        user=user,
        details={"selections": len(votes)},
    )
    return votes


def has_user_voted(poll_id, user_id) -> bool:
    return Vote.objects.filter(poll_id=poll_id, user_id=user_id).exists()


def get_poll_statistics(poll: Poll) -> PollStatisticsDTO:
    """Per-option counts; percentages are of unique voters, to 2 decimals."""
    total = count_voters(poll)
    results = []
    for option in option_dtos(poll):
        percentage = round(option.vote_count / total * 100, 2) if total else 0.0
        results.append(OptionResultDTO(
            option_id=option.id,
            option_text=option.text,
            vote_count=option.vote_count,
            percentage=percentage,
        ))
    return PollStatisticsDTO(poll_id=poll.id, total_votes=total, option_results=results)


# =============================================================================
# Lookups
# =============================================================================

def get_poll(poll_id) -> Optional[Poll]:
    return Poll.objects.select_related('created_by').filter(id=poll_id).first()


def get_active_polls() -> List[Poll]:
    return list(
        Poll.objects.select_related('created_by')
        .filter(status=PollStatus.PUBLISHED)
        .order_by('-created_at')
    )


def get_polls_by_creator(user_id, status: Optional[str] = None) -> List[Poll]:
    qs = Poll.objects.select_related('created_by').filter(created_by_id=user_id)
    if status:
        qs = qs.filter(status=status)
    return list(qs.order_by('-created_at'))


def list_polls(status: Optional[str] = None) -> List[Poll]:
    qs = Poll.objects.select_related('created_by')
    if status:
        qs = qs.filter(status=status)
    return list(qs.order_by('-created_at'))


def get_user_voting_history(user_id) -> List[VoteHistoryDTO]:
    votes = Vote.objects.select_related('poll', 'option').filter(user_id=user_id).order_by('-created_at')
    return [
        VoteHistoryDTO(
            poll_id=v.poll_id,
            poll_question=v.poll.question,
            poll_status=v.poll.status,
            option_id=v.option_id,
            option_text=v.option.text,
            explanation=v.explanation,
            created_at=v.created_at,
        )
        for v in votes
    ]
