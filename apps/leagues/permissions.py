from rest_framework import permissions


class IsLeagueMember(permissions.BasePermission):
    """
    Permission: User must be a member of the league.
    """

    def has_object_permission(self, request, view, obj):
        # obj is a League instance
        return obj.has_member(request.user)
