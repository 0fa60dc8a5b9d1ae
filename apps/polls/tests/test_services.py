"""Tests for poll lifecycle, voting rules and results."""
from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.test import TestCase
from django.utils import timezone

from apps.governance.models import AuditLog
from apps.identity.models import UserRole
from apps.polls import services
from apps.polls.models import Poll, PollStatus, PollType, Vote

User = get_user_model()


class PollTestMixin:

    def setUp(self):
        self.editor = User.objects.create_user(
            username='editor@test.com', password='testpass123', role=UserRole.CONTENT_EDITOR,
        )
        self.owner = User.objects.create_user(
            username='owner@test.com', password='testpass123', role=UserRole.OWNER,
        )
        self.other_owner = User.objects.create_user(
            username='other@test.com', password='testpass123', role=UserRole.OWNER,
        )
        notify = patch('apps.polls.services.TaskService.send_poll_notification')
        self.notify = notify.start()
        self.addCleanup(notify.stop)

    def make_poll(self, **kwargs):
        defaults = dict(
            question='Repaint the lobby?',
            options=['Yes', 'No'],
            created_by=self.editor,
        )
        defaults.update(kwargs)
        return services.create_poll(**defaults)

    def make_published_poll(self, **kwargs):
        poll = self.make_poll(**kwargs)
        return services.publish_poll(poll, self.editor)


class CreatePollTest(PollTestMixin, TestCase):

    def test_create_draft_with_ordered_options(self):
        poll = self.make_poll(options=[' Yes ', 'No', 'Abstain'])

        self.assertEqual(poll.status, PollStatus.DRAFT)
        self.assertEqual(list(poll.options.values_list('text', flat=True)), ['Yes', 'No', 'Abstain'])
        self.assertTrue(AuditLog.objects.filter(entity_type='Poll', action='create').exists())

    def test_question_is_required(self):
        with self.assertRaisesMessage(ValueError, 'Poll question is required'):
            self.make_poll(question='   ')

    def test_needs_two_options(self):
        with self.assertRaisesMessage(ValueError, 'At least 2 options are required'):
            self.make_poll(options=['Only one'])

    def test_rejects_empty_option(self):
        with self.assertRaisesMessage(ValueError, 'Poll options cannot be empty'):
            self.make_poll(options=['Yes', ' '])

    def test_max_choices_bounded_by_options(self):
        with self.assertRaisesMessage(ValueError, 'Maximum choices cannot exceed number of options'):
            self.make_poll(poll_type=PollType.MULTIPLE_CHOICE, max_choices=3)

    def test_single_choice_ignores_max_choices(self):
        poll = self.make_poll(max_choices=2)
        self.assertIsNone(poll.max_choices)

    def test_deadline_must_be_in_future(self):
        with self.assertRaisesMessage(ValueError, 'Voting deadline must be in the future'):
            self.make_poll(end_date=timezone.now() - timedelta(hours=1))


class LifecycleTest(PollTestMixin, TestCase):

    def test_publish_notifies_owners(self):
        poll = self.make_poll()
        services.publish_poll(poll, self.editor)

        poll.refresh_from_db()
        self.assertEqual(poll.status, PollStatus.PUBLISHED)
        self.notify.assert_called_once_with(poll.id)

    def test_publish_survives_notification_failure(self):
        self.notify.side_effect = RuntimeError('queue down')
        poll = self.make_poll()

        services.publish_poll(poll, self.editor)
        self.assertEqual(Poll.objects.get(id=poll.id).status, PollStatus.PUBLISHED)

    def test_only_creator_can_publish(self):
        poll = self.make_poll()
        with self.assertRaises(PermissionDenied):
            services.publish_poll(poll, self.other_owner)

    def test_publish_twice_fails(self):
        poll = self.make_published_poll()
        with self.assertRaisesMessage(ValueError, 'Only draft polls can be published'):
            services.publish_poll(poll, self.editor)

    def test_close_requires_published(self):
        poll = self.make_poll()
        with self.assertRaisesMessage(ValueError, 'Only published polls can be closed'):
            services.close_poll(poll, self.editor)

        services.publish_poll(poll, self.editor)
        services.close_poll(poll, self.editor)
        self.assertEqual(Poll.objects.get(id=poll.id).status, PollStatus.CLOSED)

    def test_update_replaces_options_only_with_two_or_more(self):
        poll = self.make_poll()

        services.update_poll(poll, self.editor, {'question': 'New colour?', 'options': ['Blue']})
        self.assertEqual(poll.options.count(), 2)
        self.assertEqual(Poll.objects.get(id=poll.id).question, 'New colour?')

        services.update_poll(poll, self.editor, {'options': ['Blue', 'Green', 'White']})
        self.assertEqual(list(poll.options.values_list('text', flat=True)), ['Blue', 'Green', 'White'])

    def test_update_clears_deadline_and_choice_limit(self):
        poll = self.make_poll(
            poll_type=PollType.MULTIPLE_CHOICE,
            options=['Pool', 'Garden', 'Gym'],
            max_choices=2,
            end_date=timezone.now() + timedelta(days=7),
        )

        services.update_poll(poll, self.editor, {'end_date': None, 'max_choices': None})

        poll = Poll.objects.get(id=poll.id)
        self.assertIsNone(poll.end_date)
        self.assertIsNone(poll.max_choices)

    def test_update_leaves_absent_fields_alone(self):
        end_date = timezone.now() + timedelta(days=7)
        poll = self.make_poll(end_date=end_date)

        services.update_poll(poll, self.editor, {'question': 'Repaint the gate?', 'description': None})

        poll = Poll.objects.get(id=poll.id)
        self.assertEqual(poll.end_date, end_date)
        self.assertEqual(poll.question, 'Repaint the gate?')

    def test_published_poll_cannot_be_edited_or_deleted(self):
        poll = self.make_published_poll()
        with self.assertRaises(ValueError):
            services.update_poll(poll, self.editor, {'question': 'Changed'})
        with self.assertRaises(ValueError):
            services.delete_poll(poll, self.editor)

    def test_delete_draft(self):
        poll = self.make_poll()
        services.delete_poll(poll, self.editor)
        self.assertFalse(Poll.objects.filter(id=poll.id).exists())


class VotingTest(PollTestMixin, TestCase):

    def test_single_choice_vote(self):
        poll = self.make_published_poll()
        yes = poll.options.get(text='Yes')

        votes = services.cast_vote(poll, self.owner, [yes.id])

        self.assertEqual(len(votes), 1)
        self.assertTrue(services.has_user_voted(poll.id, self.owner.id))

    def test_cannot_vote_on_draft(self):
        poll = self.make_poll()
        with self.assertRaisesMessage(ValueError, 'Poll is not published'):
            services.cast_vote(poll, self.owner, [poll.options.first().id])

    def test_cannot_vote_after_deadline(self):
        poll = self.make_published_poll(end_date=timezone.now() + timedelta(hours=1))
        Poll.objects.filter(id=poll.id).update(end_date=timezone.now() - timedelta(minutes=1))

        with self.assertRaisesMessage(ValueError, 'Voting deadline has passed'):
            services.cast_vote(poll, self.owner, [poll.options.first().id])

    def test_one_ballot_per_user(self):
        poll = self.make_published_poll()
        option = poll.options.first()
        services.cast_vote(poll, self.owner, [option.id])

        with self.assertRaisesMessage(ValueError, 'User has already voted on this poll'):
            services.cast_vote(poll, self.owner, [option.id])

    def test_single_choice_rejects_two_options(self):
        poll = self.make_published_poll()
        ids = list(poll.options.values_list('id', flat=True))
        with self.assertRaisesMessage(ValueError, 'Single choice polls require exactly one selection'):
            services.cast_vote(poll, self.owner, ids)

    def test_multiple_choice_respects_max_choices(self):
        poll = self.make_published_poll(
            poll_type=PollType.MULTIPLE_CHOICE, options=['Pool', 'Gym', 'Garden'], max_choices=2,
        )
        ids = list(poll.options.values_list('id', flat=True))

        with self.assertRaises(ValueError):
            services.cast_vote(poll, self.owner, ids)

        votes = services.cast_vote(poll, self.owner, ids[:2])
        self.assertEqual(len(votes), 2)

    def test_rejects_option_from_another_poll(self):
        poll = self.make_published_poll()
        other = self.make_published_poll(question='Other?')
        with self.assertRaisesMessage(ValueError, 'Invalid option IDs provided'):
            services.cast_vote(poll, self.owner, [other.options.first().id])
        self.assertFalse(Vote.objects.exists())

    def test_explanation_required(self):
        poll = self.make_published_poll(require_explanation=True)
        option = poll.options.first()
        with self.assertRaises(ValueError):
            services.cast_vote(poll, self.owner, [option.id])

        services.cast_vote(poll, self.owner, [option.id], explanation='Too dark')
        self.assertEqual(Vote.objects.get().explanation, 'Too dark')


class StatisticsTest(PollTestMixin, TestCase):

    def test_percentages_of_unique_voters(self):
        poll = self.make_published_poll(
            poll_type=PollType.MULTIPLE_CHOICE, options=['Pool', 'Gym', 'Garden'],
        )
        pool, gym, garden = poll.options.order_by('order_index')
        services.cast_vote(poll, self.owner, [pool.id, gym.id])
        services.cast_vote(poll, self.other_owner, [pool.id])
        services.cast_vote(poll, self.editor, [garden.id])

        stats = services.get_poll_statistics(poll)

        self.assertEqual(stats.total_votes, 3)
        by_text = {r.option_text: r for r in stats.option_results}
        self.assertEqual(by_text['Pool'].vote_count, 2)
        self.assertEqual(by_text['Pool'].percentage, 66.67)
        self.assertEqual(by_text['Gym'].percentage, 33.33)

    def test_no_votes(self):
        poll = self.make_published_poll()
        stats = services.get_poll_statistics(poll)
        self.assertEqual(stats.total_votes, 0)
        self.assertTrue(all(r.percentage == 0 for r in stats.option_results))

    def test_voting_history(self):
        poll = self.make_published_poll()
        option = poll.options.get(text='No')
        services.cast_vote(poll, self.owner, [option.id])

        history = services.get_user_voting_history(self.owner.id)
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].option_text, 'No')
        self.assertEqual(history[0].poll_question, 'Repaint the lobby?')
