"""
API views for CRM leads.

These endpoints are the event source for notifications and webhooks. The
business response never depends on whether any subscriber was reached.
"""
import logging
import uuid
from rest_framework.exceptions import ParseError
from rest_framework.permissions import IsAdminUser
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.utils.decorators import method_decorator

from leads import events
from leads.models import Lead, LeadActivity
from leads.serializers import (
    LeadActivitySerializer,
    LeadSerializer,
    LeadStatusSerializer,
    diff_lead,
)

logger = logging.getLogger(__name__)


@method_decorator(csrf_exempt, name='dispatch')
class LeadIntakeView(APIView):
    """
    Public intake endpoint for the website contact form.

    POST /api/leads/
    - Validates and stores the lead
    - Schedules lead.created notifications and webhooks after commit
    - Returns 201 Created with lead_id and correlation_id
    """

    def post(self, request):
        """
        Handle a new lead submission.

        Returns:
            201 Created: Lead stored
            400 Bad Request: Malformed JSON or invalid fields
            500 Internal Server Error: Unexpected error
        """
        # Correlation ID for request tracing
        correlation_id = str(uuid.uuid4())

        try:
            serializer = LeadSerializer(data=request.data)
            if not serializer.is_valid():
                logger.warning(
                    f"Invalid lead submission: {serializer.errors}, "
                    f"correlation_id={correlation_id}"
                )
                return Response(
                    {
                        'errors': serializer.errors,
                        'correlation_id': correlation_id
                    },
                    status=status.HTTP_400_BAD_REQUEST
                )

            with transaction.atomic():
                lead = serializer.save()
                events.lead_created(lead)

            logger.info(
                f"Lead {lead.id} created, "
                f"correlation_id={correlation_id}"
            )

            return Response(
                {
                    'status': 'created',
                    'lead_id': str(lead.id),
                    'correlation_id': correlation_id
                },
                status=status.HTTP_201_CREATED
            )

        except ParseError as e:
            logger.warning(
                f"Malformed JSON payload: {e}, "
                f"correlation_id={correlation_id}"
            )
            return Response(
                {
                    'error': 'Malformed JSON',
                    'correlation_id': correlation_id
                },
                status=status.HTTP_400_BAD_REQUEST
            )
        except Exception as e:
            logger.error(
                f"Error creating lead: {e}, "
                f"correlation_id={correlation_id}",
                exc_info=True
            )
            return Response(
                {
                    'error': 'Internal server error',
                    'correlation_id': correlation_id
                },
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )


class LeadDetailView(APIView):
    """
    GET/PATCH/DELETE /api/leads/{id}/

    PATCH emits lead.updated with the changed fields; DELETE emits
    lead.deleted.
    """
    permission_classes = [IsAdminUser]

    def get(self, request, lead_id):
        lead = get_object_or_404(Lead, id=lead_id)
        return Response(LeadSerializer(lead).data)

    def patch(self, request, lead_id):
        lead = get_object_or_404(Lead, id=lead_id)
        serializer = LeadSerializer(lead, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response({'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        changes = diff_lead(lead, serializer.validated_data)
        with transaction.atomic():
            lead = serializer.save()
            events.lead_updated(lead, changes)

        logger.info(f"Lead {lead.id} updated: {', '.join(changes) or 'no changes'}")
        return Response(LeadSerializer(lead).data)

    def delete(self, request, lead_id):
        lead = get_object_or_404(Lead, id=lead_id)
        lead_id, name, email = lead.id, lead.name, lead.email

        with transaction.atomic():
            lead.delete()
            events.lead_deleted(lead_id, name, email)

        logger.info(f"Lead {lead_id} deleted")
        return Response({'success': True, 'message': 'Lead deleted'})


class LeadStatusView(APIView):
    """
    PATCH /api/leads/{id}/status/

    Moves a lead through the pipeline and logs a status_change activity.
    """
    permission_classes = [IsAdminUser]

    def patch(self, request, lead_id):
        lead = get_object_or_404(Lead, id=lead_id)
        serializer = LeadStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        previous_status = lead.status
        new_status = serializer.validated_data['status']

        if previous_status == new_status:
            return Response(LeadSerializer(lead).data)

        with transaction.atomic():
            lead.status = new_status
            lead.save(update_fields=['status', 'updated_at'])
            LeadActivity.objects.create(
                lead=lead,
                type=LeadActivity.Type.STATUS_CHANGE,
                description=f"Status changed from {previous_status} to {new_status}",
            )
            events.lead_status_changed(lead, previous_status, new_status)

        logger.info(f"Lead {lead.id} status {previous_status} -> {new_status}")
        return Response(LeadSerializer(lead).data)


class LeadActivityView(APIView):
    """
    POST /api/leads/{id}/activities/
    """
    permission_classes = [IsAdminUser]

    def post(self, request, lead_id):
        lead = get_object_or_404(Lead, id=lead_id)
        serializer = LeadActivitySerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            activity = serializer.save(lead=lead)
            events.activity_added(lead, activity)

        logger.info(f"Activity {activity.id} ({activity.type}) added to lead {lead.id}")
        return Response(LeadActivitySerializer(activity).data, status=status.HTTP_201_CREATED)
