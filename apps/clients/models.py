from django.db import models


class Client(models.Model):
    """Read-only view of the agency's client directory.

    Records are owned by the client management service; the broadcast engine
    only reads them to resolve audiences and personalize content.
    """

    class Meta:
        app_label = 'clients'
        indexes = [
            models.Index(fields=['tenant_id', 'status'], name='client_tenant_status_idx'),
            models.Index(fields=['tenant_id', 'client_type'], name='client_tenant_type_idx'),
        ]

    CLIENT_TYPE_CHOICES = [
        ('individual', 'Individual'),
        ('corporate', 'Corporate'),
        ('group', 'Group'),
    ]

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('prospective', 'Prospective'),
        ('pending', 'Pending'),
    ]

    tenant_id = models.IntegerField(db_index=True)
    client_code = models.CharField(max_length=50, unique=True)
    client_type = models.CharField(max_length=20, choices=CLIENT_TYPE_CHOICES)
    display_name = models.CharField(max_length=200, blank=True)
    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)
    contact_person_name = models.CharField(max_length=200, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=30, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    pincode = models.CharField(max_length=20, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='prospective')
    # {"email": {"offers": false, "newsletters": true}, "sms": {...}}
    communication_preferences = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.display_name or self.client_code
