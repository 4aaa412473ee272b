from django.contrib.auth.models import AbstractUser
from django.db import models

from .roles import CallerIdentity, Role


class User(AbstractUser):
    tenant_id = models.IntegerField(db_index=True)
    email = models.EmailField(unique=True)
    role = models.CharField(
        max_length=50,
        choices=[(role.value, role.value.replace('_', ' ').title()) for role in Role],
        default=Role.AGENT.value
    )

    # Fix reverse accessor conflicts
    groups = models.ManyToManyField(
        'auth.Group',
        related_name='custom_user_set',
        blank=True
    )
    user_permissions = models.ManyToManyField(
        'auth.Permission',
        related_name='custom_user_set',
        blank=True
    )

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username', 'tenant_id']

    @property
    def caller(self):
        return CallerIdentity.from_user(self)
