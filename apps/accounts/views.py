from rest_framework import status, serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from .serializers import UserSerializer, AcceptPlanTierSerializer
from .services import accept_plan_tier, InvalidPlanTierError


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


@extend_schema(
    methods=['GET'],
    responses={200: UserSerializer},
    description="Get the current member's profile including plan tier.",
    tags=['auth'],
)
@extend_schema(
    methods=['PATCH'],
    request=UserSerializer,
    responses={
        200: UserSerializer,
        400: ErrorResponseSerializer,
    },
    description="Update the current member's handle and full name.",
    tags=['auth'],
)
@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def current_user(request):
    """Get or update the current user profile."""
    user = request.user
    if request.method == 'GET':
        return Response(UserSerializer(user).data)

    serializer = UserSerializer(user, data=request.data, partial=True)

    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)

    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@extend_schema(
    request=AcceptPlanTierSerializer,
    responses={
        200: UserSerializer,
        400: ErrorResponseSerializer,
    },
    description="Accept a plan tier. Re-accepting the current tier is a no-op.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def accept_tier(request):
    """Record the member's acceptance of a plan tier."""
    serializer = AcceptPlanTierSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        accept_plan_tier(
            user_id=request.user.id,
            tier=serializer.validated_data['tier'],
        )
    except InvalidPlanTierError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    request.user.refresh_from_db(fields=['plan_tier'])
    return Response(UserSerializer(request.user).data)
