from django.core.management.base import BaseCommand

from apps.core.languages import Language
from apps.identity.models import User, UserRole


class Command(BaseCommand):
    help = 'Seeds the database with one portal user per role'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='password', help='Password for newly created users')

    def handle(self, *args, **options):
        users = [
            {'username': 'admin', 'role': UserRole.ADMIN, 'language': Language.FRENCH},
            {'username': 'editor', 'role': UserRole.CONTENT_EDITOR, 'language': Language.ENGLISH},
            {'username': 'owner', 'role': UserRole.OWNER, 'language': Language.ARABIC},
        ]

        for u in users:
            user, created = User.objects.get_or_create(username=u['username'])

            user.role = u['role']
            user.email = user.email or f"{u['username']}@costabeach.local"
            user.preferred_language = u['language']
            if u['role'] == UserRole.ADMIN:
                user.is_staff = True
                user.is_superuser = True
            if u['role'] == UserRole.OWNER:
                user.is_verified_owner = True
                user.building_number = user.building_number or 'A'
                user.apartment_number = user.apartment_number or '101'

            if created:
                user.set_password(options['password'])
                user.save()
                self.stdout.write(self.style.SUCCESS(f'Created user: {u["username"]} (Role: {u["role"]})'))
            else:
                user.save()
                self.stdout.write(self.style.WARNING(f'Updated user: {u["username"]}'))
