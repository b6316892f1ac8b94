"""
Inbox automation: monitoring jobs, feedback ingestion and the service facade.
"""

from .dataset import DatasetSink
from .feedback import FeedbackIngestor
from .monitor import InboxMonitor, MonitoringJob
from .service import AutomationService, validate_feedback, build_automation_service

__all__ = [
    'DatasetSink',
    'FeedbackIngestor',
    'InboxMonitor',
    'MonitoringJob',
    'AutomationService',
    'validate_feedback',
    'build_automation_service',
]
