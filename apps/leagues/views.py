from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .models import League, month_key_for
from .permissions import IsLeagueMember
from .serializers import (
    LeagueSerializer,
    LeagueCreateSerializer,
    LeagueListSerializer,
    LeagueMemberSerializer,
    JoinLeagueSerializer,
    DailyLogEntrySerializer,
    UpsertDailyLogSerializer,
)

from apps.leagues.services import (
    create_league_and_join,
    resolve_invite_code,
    get_league_members,
    upsert_daily_log,
    fetch_month_logs,
    month_bounds,
    # Exceptions
    InvalidInviteCodeError,
    InvalidLeagueDataError,
    FreeQuotaExhaustedError,
    PaymentRequiredError,
    NotMemberError,
)


class LeagueViewSet(mixins.ListModelMixin,
                    mixins.RetrieveModelMixin,
                    viewsets.GenericViewSet):
    """
    ViewSet for leagues the current user belongs to.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Get leagues the user is a member of
    create: Create a new league (owner membership included)
    retrieve: Get a specific league
    """

    serializer_class = LeagueSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        """Return only leagues where user is a member."""
        return League.objects.filter(
            memberships__user=self.request.user
        ).select_related('owner').prefetch_related('memberships').distinct()

    def get_serializer_class(self):
        if self.action == 'list':
            return LeagueListSerializer
        elif self.action == 'create':
            return LeagueCreateSerializer
        return LeagueSerializer

    def get_permissions(self):
        if self.action in ['members', 'logs']:
            return [IsAuthenticated(), IsLeagueMember()]
        return [IsAuthenticated()]

    def create(self, request, *args, **kwargs):
        """Create a new league."""
        serializer = LeagueCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            league = create_league_and_join(
                owner_id=request.user.id,
                name=data['name'],
                activity=data['activity'],
                is_free=data.get('is_free', True),
                plan_tier=data.get('plan_tier'),
                month_key=data.get('month_key'),
                creation_key=data.get('creation_key'),
            )
        except InvalidLeagueDataError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except FreeQuotaExhaustedError as e:
            return Response(
                {'error': str(e), 'code': 'free_league_used'},
                status=status.HTTP_409_CONFLICT
            )
        except PaymentRequiredError as e:
            return Response(
                {'error': str(e), 'code': 'payment_required'},
                status=status.HTTP_402_PAYMENT_REQUIRED
            )

        output_serializer = LeagueSerializer(league, context={'request': request})
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'])
    def members(self, request, pk=None):
        """Get the league roster."""
        league = self.get_object()
        memberships = get_league_members(league_id=league.id)
        serializer = LeagueMemberSerializer(memberships, many=True)
        return Response(serializer.data)

    @extend_schema(
        parameters=[OpenApiParameter('month', str, description="Tracking period 'YYYY-MM'")],
    )
    @action(detail=True, methods=['get', 'put'])
    def logs(self, request, pk=None):
        """Get the month's logs, or upsert the caller's own entry."""
        league = self.get_object()

        if request.method == 'PUT':
            return self._upsert_log(request, league)

        month_key = request.query_params.get('month') or month_key_for(timezone.localdate())
        try:
            from_date, to_date = month_bounds(month_key)
        except ValueError:
            return Response(
                {'error': "month must be formatted as 'YYYY-MM'"},
                status=status.HTTP_400_BAD_REQUEST
            )

        entries = fetch_month_logs(league_id=league.id, from_date=from_date, to_date=to_date)
        return Response(DailyLogEntrySerializer(entries, many=True).data)

    def _upsert_log(self, request, league):
        serializer = UpsertDailyLogSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            entry, applied = upsert_daily_log(
                league_id=league.id,
                user_id=request.user.id,
                date=serializer.validated_data['date'],
                completed=serializer.validated_data['completed'],
                written_at=serializer.validated_data.get('written_at'),
            )
        except NotMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        data = DailyLogEntrySerializer(entry).data
        data['applied'] = applied
        return Response(data)


@extend_schema(
    request=JoinLeagueSerializer,
    responses={200: LeagueSerializer},
    description="Resolve an invite code and join its league.",
    tags=['leagues'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def join_league(request):
    """Join a league using an invite code."""
    serializer = JoinLeagueSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        membership = resolve_invite_code(
            code=serializer.validated_data['invite_code'],
            user_id=request.user.id,
        )
    except InvalidInviteCodeError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    output_serializer = LeagueSerializer(membership.league, context={'request': request})
    return Response(output_serializer.data)
