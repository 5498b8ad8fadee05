"""
Celery configuration for the CRM notification service.
"""
import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'crm_gateway.settings')

app = Celery('crm_gateway')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
