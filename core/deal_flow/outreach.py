"""
Template-backed outreach drafting.

Drafts are rendered with Jinja2 from a small built-in template set (callers
may pass their own) and kept in memory; the returned handle is the draft id.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Final, Optional
from uuid import uuid4

from jinja2 import DictLoader, Environment, StrictUndefined, TemplateNotFound

from core.deal_flow.collaborators import OutreachService
from core.deal_flow.errors import CollaboratorError
from core.deal_flow.models import PropertyRecord
from utils.formatting import format_currency

DEFAULT_TEMPLATES: Final[dict[str, str]] = {
    "property_evaluation": (
        "Subject: Enquiry about {{ record.address }}\n\n"
        "Hello,\n\n"
        "I came across your property at {{ record.address }}"
        "{% if price %} listed at {{ price }}{% endif %} and would like to learn more"
        "{% if record.owner_financing %}, including the owner financing terms{% endif %}.\n\n"
        "Could we arrange a time to talk this week?\n"
    ),
    "urgent_opportunity": (
        "Subject: Ready to move on {{ record.address }}\n\n"
        "Hello,\n\n"
        "I am very interested in {{ record.address }}"
        "{% if price %} at {{ price }}{% endif %} and can move quickly.\n"
        "{% if record.lease_to_own %}A lease-to-own arrangement would work well for me.\n{% endif %}"
        "Please let me know the earliest time we can speak.\n"
    ),
}


@dataclass(frozen=True)
class OutreachDraft:
    """A rendered outreach draft."""

    draft_id: str
    property_id: str
    template: str
    priority: str
    body: str
    created_at: datetime


class TemplateOutreachService(OutreachService):
    """Renders outreach drafts from Jinja2 templates."""

    def __init__(self, templates: Optional[dict[str, str]] = None, currency: str = "USD"):
        """
        Initialize the drafting service.

        Args:
            templates: Template name -> Jinja2 source. Defaults to DEFAULT_TEMPLATES.
            currency: Currency code used when formatting prices.
        """
        self._env = Environment(
            loader=DictLoader(templates or DEFAULT_TEMPLATES),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self._currency = currency
        self._lock = threading.Lock()
        self._drafts: dict[str, OutreachDraft] = {}

    def draft(self, template: str, record: PropertyRecord, options: dict[str, Any]) -> str:
        try:
            tmpl = self._env.get_template(template)
        except TemplateNotFound as e:
            raise CollaboratorError(f"Unknown outreach template: {template}") from e

        price = format_currency(record.price, self._currency) if record.price else ""
        body = tmpl.render(record=record, price=price, options=options)

        draft = OutreachDraft(
            draft_id=f"draft_{uuid4().hex[:12]}",
            property_id=record.id,
            template=template,
            priority=str(options.get("priority", "normal")),
            body=body,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._drafts[draft.draft_id] = draft
        return draft.draft_id

    def get_draft(self, draft_id: str) -> Optional[OutreachDraft]:
        with self._lock:
            return self._drafts.get(draft_id)
