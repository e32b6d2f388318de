"""
Webhook automations: order completed pipeline, license reminders and the
email automation trigger.
"""

from .automator import AutomatorNotifier
from .order_pipeline import OrderWebhookPipeline, PipelineResult, PendingOrderRequest
from .reminders import REMINDER_TEMPLATES, ReminderHandler

__all__ = [
    "AutomatorNotifier",
    "OrderWebhookPipeline",
    "PipelineResult",
    "PendingOrderRequest",
    "REMINDER_TEMPLATES",
    "ReminderHandler"
]
