"""
Data models for CRM leads.

Only the fields the notification subsystem reads are modelled here; the
rest of the CRM surface lives elsewhere.
"""
import uuid

from django.db import models


class Lead(models.Model):
    """
    A sales lead captured from the website contact form or the API.
    Creating it or moving it through the pipeline emits notification events.
    """
    
    class Status(models.TextChoices):
        NEW = 'new', 'New'
        CONTACTED = 'contacted', 'Contacted'
        QUALIFIED = 'qualified', 'Qualified'
        PROPOSAL = 'proposal', 'Proposal'
        WON = 'won', 'Won'
        LOST = 'lost', 'Lost'
    
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255)
    company = models.CharField(max_length=255, null=True, blank=True)
    phone = models.CharField(max_length=50, null=True, blank=True)
    budget = models.CharField(max_length=100, null=True, blank=True)
    project_type = models.CharField(max_length=100, null=True, blank=True)
    message = models.TextField()
    source = models.CharField(max_length=100, null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.NEW,
        db_index=True
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    
    class Meta:
        ordering = ['-created_at']
    
    def __str__(self):
        return f"Lead {self.name} <{self.email}> - {self.status}"


class LeadActivity(models.Model):
    """
    A note, call, email or meeting logged against a lead.
    """
    
    class Type(models.TextChoices):
        NOTE = 'note', 'Note'
        EMAIL = 'email', 'Email'
        CALL = 'call', 'Call'
        MEETING = 'meeting', 'Meeting'
        STATUS_CHANGE = 'status_change', 'Status change'
    
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    lead = models.ForeignKey(
        Lead,
        on_delete=models.CASCADE,
        related_name='activities'
    )
    type = models.CharField(max_length=20, choices=Type.choices)
    description = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    
    class Meta:
        ordering = ['lead', '-created_at']
    
    def __str__(self):
        return f"{self.type} on {self.lead_id}"
