"""
Input schemas for the lead endpoints.
"""
from rest_framework import serializers

from leads.models import Lead, LeadActivity

# Fields whose changes are reported in lead.updated
TRACKED_FIELDS = ('name', 'email', 'company', 'phone', 'budget', 'project_type', 'message', 'source')


class LeadSerializer(serializers.ModelSerializer):

    class Meta:
        model = Lead
        fields = (
            'id', 'name', 'email', 'company', 'phone', 'budget', 'project_type',
            'message', 'source', 'status', 'created_at', 'updated_at',
        )
        read_only_fields = ('id', 'status', 'created_at', 'updated_at')

    def validate(self, attrs):
        if self.partial and not attrs:
            raise serializers.ValidationError('At least one field is required')
        return attrs


class LeadStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Lead.Status.choices)


class LeadActivitySerializer(serializers.ModelSerializer):

    class Meta:
        model = LeadActivity
        fields = ('id', 'type', 'description', 'created_at')
        read_only_fields = ('id', 'created_at')


def diff_lead(lead: Lead, validated_data: dict) -> dict:
    """
    Compare incoming values with the stored lead.

    Returns:
        {field: {'old': ..., 'new': ...}} for tracked fields that change
    """
    changes = {}
    for field_name in TRACKED_FIELDS:
        if field_name not in validated_data:
            continue
        old_value = getattr(lead, field_name)
        new_value = validated_data[field_name]
        if old_value != new_value:
            changes[field_name] = {'old': old_value, 'new': new_value}
    return changes
