"""
Community poll endpoints.

Any signed-in owner can read published polls and vote; poll managers
create polls and maintain their translations.
"""
from typing import List, Optional
from uuid import UUID

from django.core.exceptions import PermissionDenied
from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from apps.core.languages import from_locale_code
from apps.identity.decorators import require_auth, require_permission
from apps.identity.permissions import Permissions, get_user_permissions
from . import services
from .dtos import (
    AutoTranslateIn,
    AutoTranslateResultOut,
    HasVotedOut,
    LocalizedPollDTO,
    PollCreateIn,
    PollDTO,
    PollStatisticsDTO,
    PollTranslationIn,
    PollTranslationOut,
    PollTranslationUpdateIn,
    PollUpdateIn,
    VoteHistoryDTO,
    VoteIn,
    VoteOut,
)
from .models import Poll, PollStatus
from .translation_service import PollTranslationService

router = Router(tags=["Polls"])


def _can_manage(user) -> bool:
    return Permissions.MANAGE_POLLS in get_user_permissions(user)


def _get_visible_poll(request: HttpRequest, poll_id: UUID) -> Poll:
    """Drafts are only visible to their creator and poll managers."""
    user = require_auth(request)
    poll = services.get_poll(poll_id)
    if not poll:
        raise HttpError(404, "Poll not found")
    if poll.status == PollStatus.DRAFT and poll.created_by_id != user.id and not _can_manage(user):
        raise HttpError(404, "Poll not found")
    return poll


def _language(value: str) -> str:
    try:
        return from_locale_code(value)
    except ValueError as e:
        raise HttpError(400, str(e))


def _translation_out(translation) -> PollTranslationOut:
    return PollTranslationOut(
        id=translation.id,
        poll_id=translation.poll_id,
        language=translation.language,
        question=translation.question,
        description=translation.description,
        created_at=translation.created_at,
        updated_at=translation.updated_at,
    )


# =============================================================================
# Polls
# =============================================================================

@router.get("", response=List[PollDTO], auth=None)
def list_polls(request: HttpRequest, status: Optional[str] = None, mine: bool = False):
    """
    Published polls by default. Managers may filter by any status; other
    users see non-published polls only among their own.
    """
    user = require_auth(request)

    if status and status not in PollStatus.values:
        raise HttpError(400, f"Invalid status: {status}")

    if mine:
        polls = services.get_polls_by_creator(user.id, status)
    elif status and status != PollStatus.PUBLISHED:
        if _can_manage(user):
            polls = services.list_polls(status)
        else:
            polls = services.get_polls_by_creator(user.id, status)
    else:
        polls = services.get_active_polls()

    return [services.to_poll_dto(p, user) for p in polls]


@router.post("", response={201: PollDTO}, auth=None)
def create_poll(request: HttpRequest, payload: PollCreateIn):
    user = require_permission(request, Permissions.MANAGE_POLLS)
    try:
        poll = services.create_poll(
            question=payload.question,
            options=payload.options,
            created_by=user,
            poll_type=payload.poll_type,
            description=payload.description,
            max_choices=payload.max_choices,
            is_anonymous=payload.is_anonymous,
            require_explanation=payload.require_explanation,
            end_date=payload.end_date,
        )
    except ValueError as e:
        raise HttpError(400, str(e))
    return 201, services.to_poll_dto(poll, user)


@router.get("/history", response=List[VoteHistoryDTO], auth=None)
def voting_history(request: HttpRequest):
    """The caller's own ballots, newest first."""
    user = require_auth(request)
    return services.get_user_voting_history(user.id)


@router.get("/{poll_id}", response=PollDTO, auth=None)
def get_poll(request: HttpRequest, poll_id: UUID):
    poll = _get_visible_poll(request, poll_id)
    return services.to_poll_dto(poll, request.user)


@router.put("/{poll_id}", response=PollDTO, auth=None)
def update_poll(request: HttpRequest, poll_id: UUID, payload: PollUpdateIn):
    user = require_permission(request, Permissions.MANAGE_POLLS)
    poll = _get_visible_poll(request, poll_id)
    try:
        poll = services.update_poll(poll, user, payload.dict(exclude_unset=True))
    except PermissionDenied as e:
        raise HttpError(403, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return services.to_poll_dto(poll, user)


@router.delete("/{poll_id}", response={204: None}, auth=None)
def delete_poll(request: HttpRequest, poll_id: UUID):
    user = require_permission(request, Permissions.MANAGE_POLLS)
    poll = _get_visible_poll(request, poll_id)
    try:
        services.delete_poll(poll, user)
    except PermissionDenied as e:
        raise HttpError(403, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return 204, None


@router.post("/{poll_id}/publish", response=PollDTO, auth=None)
def publish_poll(request: HttpRequest, poll_id: UUID):
    user = require_permission(request, Permissions.MANAGE_POLLS)
    poll = _get_visible_poll(request, poll_id)
    try:
        poll = services.publish_poll(poll, user)
    except PermissionDenied as e:
        raise HttpError(403, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return services.to_poll_dto(poll, user)


@router.post("/{poll_id}/close", response=PollDTO, auth=None)
def close_poll(request: HttpRequest, poll_id: UUID):
    user = require_permission(request, Permissions.MANAGE_POLLS)
    poll = _get_visible_poll(request, poll_id)
    try:
        poll = services.close_poll(poll, user)
    except PermissionDenied as e:
        raise HttpError(403, str(e))
    except ValueError as e:
        raise HttpError(400, str(e))
    return services.to_poll_dto(poll, user)


# =============================================================================
# Voting
# =============================================================================

@router.post("/{poll_id}/vote", response={201: VoteOut}, auth=None)
def vote(request: HttpRequest, poll_id: UUID, payload: VoteIn):
    user = require_auth(request)
    poll = _get_visible_poll(request, poll_id)
    try:
        votes = services.cast_vote(poll, user, payload.option_ids, payload.explanation)
    except ValueError as e:
        raise HttpError(400, str(e))
    return 201, VoteOut(poll_id=poll.id, option_ids=[v.option_id for v in votes])


@router.get("/{poll_id}/results", response=PollStatisticsDTO, auth=None)
def poll_results(request: HttpRequest, poll_id: UUID):
    poll = _get_visible_poll(request, poll_id)
    return services.get_poll_statistics(poll)


@router.get("/{poll_id}/has-voted", response=HasVotedOut, auth=None)
def has_voted(request: HttpRequest, poll_id: UUID):
    poll = _get_visible_poll(request, poll_id)
    return HasVotedOut(poll_id=poll.id, has_voted=services.has_user_voted(poll.id, request.user.id))


# =============================================================================
# Translations
# =============================================================================

@router.get("/{poll_id}/translations", response=List[PollTranslationOut], auth=None)
def list_translations(request: HttpRequest, poll_id: UUID):
    poll = _get_visible_poll(request, poll_id)
    return [_translation_out(t) for t in PollTranslationService.get_translations(poll.id)]


@router.post("/{poll_id}/translations", response={201: PollTranslationOut}, auth=None)
def create_translation(request: HttpRequest, poll_id: UUID, payload: PollTranslationIn):
    user = require_permission(request, Permissions.MANAGE_POLLS)
    poll = _get_visible_poll(request, poll_id)
    try:
        translation = PollTranslationService.create_translation(
            poll.id, _language(payload.language), payload.question, payload.description, user=user,
        )
    except ValueError as e:
        raise HttpError(400, str(e))
    return 201, _translation_out(translation)


@router.post("/{poll_id}/translations/auto", response=List[AutoTranslateResultOut], auth=None)
def auto_translate(request: HttpRequest, poll_id: UUID, payload: AutoTranslateIn):
    """Machine-translate the poll into each requested language."""
    user = require_permission(request, Permissions.MANAGE_POLLS)
    poll = _get_visible_poll(request, poll_id)
    if not payload.target_languages:
        raise HttpError(400, "At least one target language is required")

    languages = [_language(code) for code in payload.target_languages]
    results = PollTranslationService.request_translations(poll.id, languages, user=user)
    return [
        AutoTranslateResultOut(
            language=r['language'],
            status=r['status'],
            translation=_translation_out(r['translation']) if r.get('translation') else None,
            error=r.get('error'),
        )
        for r in results
    ]


@router.get("/{poll_id}/translations/{language}", response=LocalizedPollDTO, auth=None)
def get_localized_poll(request: HttpRequest, poll_id: UUID, language: str):
    """The poll in the given language, falling back to the original text."""
    poll = _get_visible_poll(request, poll_id)
    return PollTranslationService.get_localized_poll(poll.id, _language(language))


@router.put("/{poll_id}/translations/{language}", response=PollTranslationOut, auth=None)
def update_translation(request: HttpRequest, poll_id: UUID, language: str, payload: PollTranslationUpdateIn):
    require_permission(request, Permissions.MANAGE_POLLS)
    poll = _get_visible_poll(request, poll_id)
    try:
        translation = PollTranslationService.update_translation(
            poll.id, _language(language), payload.question, payload.description,
        )
    except ValueError as e:
        raise HttpError(400, str(e))
    return _translation_out(translation)


@router.delete("/{poll_id}/translations/{language}", response={204: None}, auth=None)
def delete_translation(request: HttpRequest, poll_id: UUID, language: str):
    require_permission(request, Permissions.MANAGE_POLLS)
    poll = _get_visible_poll(request, poll_id)
    if not PollTranslationService.delete_translation(poll.id, _language(language)):
        raise HttpError(404, "Translation not found")
    return 204, None
