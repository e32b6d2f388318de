"""
License reminder automations.

Every reminder is the same flow with a different template: take
{first_name, phone} from the automation tool and send a one-placeholder
WhatsApp template. The caller always gets 200.
"""

import logging
from typing import Any, Dict

from whatsapp.client import WhatsAppClient
from whatsapp.formatters import first_name_or_default
from .order_pipeline import PipelineResult

logger = logging.getLogger(__name__)

# Webhook route kind -> approved template name
REMINDER_TEMPLATES: Dict[str, str] = {
    # 27 days after purchase, 3 days before a 30 day license expires
    "lembrete_27_dias": "lembrete_vencimento_3_dias",
    "expira_hoje": "aviso_expiracao_hoje",
    "lembrete_35_dias": "lembrete_35_dias",
    "lembrete_40_dias": "cupom_40_dias",
    "lembrete_57_dias": "lembrete_57_dias",
    "lembrete_60_dias": "cupom_60_dias",
}


class ReminderHandler:
    """Sends the template mapped to a reminder kind."""

    def __init__(self, whatsapp_client: WhatsAppClient, templates: Dict[str, str] = REMINDER_TEMPLATES):
        self.whatsapp_client = whatsapp_client
        self.templates = dict(templates)

    async def handle(self, kind: str, payload: Dict[str, Any]) -> PipelineResult:
        template_name = self.templates[kind]
        logger.info(f"Webhook /{kind} received for: {payload.get('email')}")

        phone = str(payload.get("phone") or "").strip()
        if not phone:
            logger.warning(f"Reminder /{kind} without phone, nothing to send")
        else:
            await self.whatsapp_client.send_template(
                phone,
                template_name,
                [first_name_or_default(payload.get("first_name"))]
            )

        return PipelineResult(200, f"Webhook de {kind.replace('_', ' ')} processado.")
