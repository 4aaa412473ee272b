from django.contrib import admin
from .models import Client


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['client_code', 'display_name', 'tenant_id', 'client_type', 'status', 'city']
    list_filter = ['client_type', 'status']
    search_fields = ['client_code', 'display_name', 'email', 'city']
