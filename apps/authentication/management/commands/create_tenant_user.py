from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model

from apps.authentication.roles import Role

User = get_user_model()


class Command(BaseCommand):
    help = 'Create a back-office user for a tenant with the given role'

    def add_arguments(self, parser):
        parser.add_argument('--email', type=str, required=True)
        parser.add_argument('--password', type=str, required=True)
        parser.add_argument('--tenant_id', type=int, required=True)
        parser.add_argument('--role', type=str, default=Role.AGENT.value,
                            choices=[role.value for role in Role])
        parser.add_argument('--username', type=str, required=True)

    def handle(self, *args, **options):
        email = options['email']
        tenant_id = options['tenant_id']

        if User.objects.filter(email=email).exists():
            self.stdout.write(
                self.style.ERROR(f'User with email {email} already exists')
            )
            return

        user = User.objects.create_user(
            username=options['username'],
            email=email,
            password=options['password'],
            tenant_id=tenant_id,
            role=options['role']
        )
        caller = user.caller

        self.stdout.write(
            self.style.SUCCESS(
                f'Successfully created {caller.role.value} {email} for tenant {tenant_id} '
                f'(write: {caller.can_write}, auto-approve: {caller.can_auto_approve}, approve: {caller.can_approve})'
            )
        )
