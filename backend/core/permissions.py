from rest_framework.permissions import BasePermission


class IsAdminRole(BasePermission):
    """Allow access only to users holding the admin role (or superusers)."""
    message = 'Admin access required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'is_admin_role', False))


def is_owner_or_admin(user, owner_id):
    """True when `user` is an admin or the owner referenced by `owner_id`."""
    if not user or not user.is_authenticated:
        return False
    if getattr(user, 'is_admin_role', False):
        return True
    return owner_id is not None and owner_id == user.id
