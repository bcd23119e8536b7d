"""
Family viewsets: families, members, invites.
"""
import logging

from django.db import transaction
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.core.exceptions import ConflictError
from apps.core.observability import log_domain_event, metrics
from apps.families.access import require_family_role
from apps.families.models import Family, FamilyMember
from apps.families.serializers import (
    FamilyInviteSerializer,
    FamilyMemberSerializer,
    FamilySerializer,
    InviteAcceptSerializer,
    InviteCreateSerializer,
    MemberRoleSerializer,
)
from apps.families.services import (
    AlreadyMemberError,
    FamilyMembershipError,
    InviteError,
    accept_invite,
    as_uuid,
    change_member_role,
    create_family,
    create_invite,
    get_family_ids_for_user,
    memberships_of,
    pending_invites,
    remove_member,
)

logger = logging.getLogger(__name__)


class FamilyViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Family endpoints.

    Endpoints:
    - GET /api/v1/families/ - families the caller belongs to, with role
    - POST /api/v1/families/ - create; caller becomes owner
    - GET /api/v1/families/{id}/
    - PATCH /api/v1/families/{id}/ - rename (owner)
    - DELETE /api/v1/families/{id}/ - delete (owner, no children)
    - GET /api/v1/families/{id}/members/
    - PATCH|DELETE /api/v1/families/{id}/members/{user_id}/
    - GET|POST /api/v1/families/{id}/invites/
    - DELETE /api/v1/families/{id}/invites/{invite_id}/

    Families the caller does not belong to are 404.
    """
    serializer_class = FamilySerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Family.objects.none()
        family_ids = get_family_ids_for_user(self.request.user.pk)
        return Family.objects.filter(id__in=family_ids).order_by('created_at', 'id')

    def get_serializer_context(self):
        context = super().get_serializer_context()
        user = getattr(self.request, 'user', None)
        if user is not None and user.is_authenticated:
            context['roles'] = dict(memberships_of(user.pk))
        return context

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        family = create_family(request.user, serializer.validated_data['name'])

        output = FamilySerializer(family, context=self.get_serializer_context())
        return Response(output.data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        """Rename family (PATCH). Owner only."""
        kwargs.pop('partial', None)
        family = self.get_object()
        require_family_role(request.user, family.id, owner=True)

        serializer = self.get_serializer(family, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    def destroy(self, request, *args, **kwargs):
        """Delete family. Owner only; refused while children remain."""
        family = self.get_object()
        require_family_role(request.user, family.id, owner=True)

        with transaction.atomic():
            if family.children.exists():
                raise ValidationError({
                    'detail': 'Cannot delete a family that has children. Move or delete the children first.'
                })
            family_id = family.id
            family.delete()

        log_domain_event('family_deleted', entity_type='Family', entity_id=str(family_id))
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    @action(detail=True, methods=['get'], url_path='members')
    def members(self, request, pk=None):
        """GET /api/v1/families/{id}/members/"""
        family = self.get_object()
        members_qs = (
            FamilyMember.objects
            .filter(family=family)
            .select_related('user')
            .order_by('created_at', 'id')
        )
        return Response(FamilyMemberSerializer(members_qs, many=True).data)

    @action(detail=True, methods=['patch', 'delete'], url_path=r'members/(?P<user_id>[^/.]+)')
    def member_detail(self, request, pk=None, user_id=None):
        """
        PATCH /api/v1/families/{id}/members/{user_id}/ - change role (parent|read_only)
        DELETE /api/v1/families/{id}/members/{user_id}/ - remove member or leave
        """
        family = self.get_object()
        target_user_id = as_uuid(user_id)
        if target_user_id is None:
            raise NotFound('Member not found.')

        if request.method == 'PATCH':
            require_family_role(request.user, family.id, edit=True)
            serializer = MemberRoleSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            try:
                member = change_member_role(family, target_user_id, serializer.validated_data['role'])
            except FamilyMember.DoesNotExist:
                raise NotFound('Member not found.')
            except FamilyMembershipError as e:
                raise ValidationError({'detail': str(e)})
            return Response(FamilyMemberSerializer(member).data)

        # Any member may leave; removing someone else requires an edit role
        if target_user_id != request.user.pk:
            require_family_role(request.user, family.id, edit=True)
        try:
            remove_member(family, target_user_id, request.user.pk)
        except FamilyMember.DoesNotExist:
            raise NotFound('Member not found.')
        except FamilyMembershipError as e:
            raise ValidationError({'detail': str(e)})
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Invites
    # ------------------------------------------------------------------

    @action(detail=True, methods=['get', 'post'], url_path='invites')
    def invites(self, request, pk=None):
        """
        GET /api/v1/families/{id}/invites/ - pending invites
        POST /api/v1/families/{id}/invites/ - create; raw token returned once
        """
        family = self.get_object()
        require_family_role(request.user, family.id, edit=True)

        if request.method == 'GET':
            return Response(FamilyInviteSerializer(pending_invites(family), many=True).data)

        serializer = InviteCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invite, token = create_invite(family, serializer.validated_data['role'], request.user)

        log_domain_event(
            'family_invite_created',
            entity_type='Family',
            entity_id=str(family.id),
            entity_ids={'invite_id': str(invite.id)},
            granted_role=invite.role,
        )
        return Response(
            {
                'id': str(invite.id),
                'family_id': str(family.id),
                'role': invite.role,
                'token': token,
                'expires_at': invite.expires_at,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=['delete'], url_path=r'invites/(?P<invite_id>[^/.]+)')
    def revoke_invite(self, request, pk=None, invite_id=None):
        """DELETE /api/v1/families/{id}/invites/{invite_id}/ - revoke a pending invite"""
        family = self.get_object()
        require_family_role(request.user, family.id, edit=True)

        invite_uuid = as_uuid(invite_id)
        invite = None
        if invite_uuid is not None:
            invite = family.invites.filter(pk=invite_uuid, used_at__isnull=True).first()
        if invite is None:
            raise NotFound('Invite not found.')

        invite.delete()
        metrics.family_invites_total.labels(result='revoked').inc()
        log_domain_event(
            'family_invite_revoked',
            entity_type='Family',
            entity_id=str(family.id),
            entity_ids={'invite_id': str(invite_uuid)},
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


class InviteAcceptView(APIView):
    """
    POST /api/v1/invites/accept/

    Body: {"token": "<raw token>"}

    Response (200): {"family_id", "family_name", "role"}
    - 400: token missing, unknown, used or expired
    - 409: caller already belongs to the family
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'invite_accept'

    def post(self, request):
        serializer = InviteAcceptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            member = accept_invite(serializer.validated_data['token'], request.user)
        except InviteError as e:
            raise ValidationError({'detail': str(e)})
        except AlreadyMemberError as e:
            raise ConflictError(str(e))

        return Response({
            'family_id': str(member.family_id),
            'family_name': member.family.name,
            'role': member.role,
        })
