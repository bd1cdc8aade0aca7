from django.core.management.base import BaseCommand
from django.db import transaction
from backend.core.models import User


DEFAULT_USERS = [
    {
        'email': 'admin@hongvan.com',
        'name': 'Admin',
        'password': 'admin123',
        'role': User.ROLE_ADMIN,
    },
    {
        'email': 'staff1@hongvan.com',
        'name': 'Staff 1',
        'password': 'staff123',
        'role': User.ROLE_STAFF,
    },
    {
        'email': 'staff2@hongvan.com',
        'name': 'Staff 2',
        'password': 'staff123',
        'role': User.ROLE_STAFF,
    },
]


class Command(BaseCommand):
    help = 'Create the default admin and staff accounts (existing accounts are left untouched)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--reset-passwords',
            action='store_true',
            help='Reset the password of accounts that already exist',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        reset_passwords = options.get('reset_passwords', False)
        created_count = 0

        for config in DEFAULT_USERS:
            user = User.objects.filter(email=config['email']).first()
            if user is None:
                User.objects.create_user(**config)
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f"✓ Created {config['role']} user {config['email']}"))
            elif reset_passwords:
                user.set_password(config['password'])
                user.save()
                self.stdout.write(self.style.WARNING(f"  Reset password for {config['email']}"))
            else:
                self.stdout.write(f"  User {config['email']} already exists")

        self.stdout.write(self.style.SUCCESS(f"\nDone. {created_count} user(s) created."))
