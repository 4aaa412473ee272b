from rest_framework.permissions import SAFE_METHODS, BasePermission


class IsTenantUser(BasePermission):
    def has_permission(self, request, view):
        return (
            request.user.is_authenticated and
            getattr(request.user, 'tenant_id', None) is not None
        )


class CanApproveCampaigns(BasePermission):
    message = 'Approver role required'

    def has_permission(self, request, view):
        return (
            IsTenantUser().has_permission(request, view) and
            request.user.caller.can_approve
        )


class CanWriteCampaigns(BasePermission):
    message = 'Campaign write access required'

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return (
            IsTenantUser().has_permission(request, view) and
            request.user.caller.can_write
        )
