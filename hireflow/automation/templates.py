"""
Built-in automation templates.

A template is a ready-made definition an operator can clone and edit.
Definitions carry no condition/action ids: cloning runs them through
validate_automation(), which assigns fresh ones, and clones always start
inactive so nothing fires before someone has reviewed them.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from hireflow.core.errors import TemplateNotFoundError


@dataclass(frozen=True)
class AutomationTemplate:
    id: str
    name: str
    description: str
    category: str
    definition: dict[str, Any] = field(default_factory=dict)

    def to_definition(self) -> dict[str, Any]:
        """A private copy of the definition, ready for validate_automation()."""
        data = copy.deepcopy(self.definition)
        data.setdefault("name", self.name)
        data.setdefault("description", self.description)
        data["is_active"] = False
        return data

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            **copy.deepcopy(self.definition),
        }


_TEMPLATES: tuple[AutomationTemplate, ...] = (
    AutomationTemplate(
        id="tech_screening",
        name="Automatic Tech Screening",
        description="Sends a technical test to Tech applicants with specific skills",
        category="tech",
        definition={
            "trigger": {"type": "application_received", "params": {}},
            "conditions": [
                {"field": "job.department", "operator": "equals", "value": "Tech"},
                {
                    "field": "candidate.skills",
                    "operator": "contains",
                    "value": "Python",
                    "logic": "AND",
                },
            ],
            "actions": [
                {
                    "type": "send_email",
                    "params": {
                        "template": "tech_test_invitation",
                        "subject": "Technical test invitation",
                    },
                },
                {"type": "send_test", "params": {"test_type": "python", "duration_hours": 48}},
                {"type": "move_stage", "params": {"stage_name": "Technical Test"}},
            ],
        },
    ),
    AutomationTemplate(
        id="fast_responder",
        name="Fast Responder",
        description="Confirms every application within one hour of receiving it",
        category="communication",
        definition={
            "trigger": {"type": "application_received", "params": {}},
            "conditions": [],
            "actions": [
                {
                    "type": "send_email",
                    "params": {
                        "template": "application_received",
                        "subject": "We received your application!",
                    },
                    "delay_minutes": 60,
                },
                {
                    "type": "add_note",
                    "params": {"note": "Confirmation email sent automatically"},
                },
            ],
        },
    ),
    AutomationTemplate(
        id="stale_alert",
        name="Inactivity Alert",
        description="Notifies the recruiter when a candidate has not moved for 10 days",
        category="monitoring",
        definition={
            "trigger": {"type": "days_without_movement", "params": {"days": 10}},
            "conditions": [],
            "actions": [
                {
                    "type": "notify_manager",
                    "params": {
                        "message": "Candidate has not moved for 10 days",
                        "channel": "email",
                    },
                },
                {"type": "add_tag", "params": {"tag": "needs-attention"}},
            ],
        },
    ),
    AutomationTemplate(
        id="high_match_priority",
        name="High Match Priority",
        description="Prioritises candidates whose match score is above 85%",
        category="scoring",
        definition={
            "trigger": {"type": "match_score_threshold", "params": {"min_score": 85}},
            "conditions": [],
            "actions": [
                {"type": "add_tag", "params": {"tag": "high-priority"}},
                {
                    "type": "notify_manager",
                    "params": {
                        "message": "High match candidate (>85%) identified",
                        "channel": "slack",
                    },
                },
                {
                    "type": "send_whatsapp",
                    "params": {"template": "interview_invitation"},
                    "delay_minutes": 30,
                },
            ],
        },
    ),
    AutomationTemplate(
        id="interview_followup",
        name="Interview Follow-up",
        description="Sends a confirmation and a reminder when an interview is scheduled",
        category="scheduling",
        definition={
            "trigger": {"type": "interview_scheduled", "params": {}},
            "conditions": [],
            "actions": [
                {
                    "type": "send_email",
                    "params": {
                        "template": "interview_confirmation",
                        "subject": "Interview confirmation",
                    },
                },
                {
                    "type": "send_whatsapp",
                    "params": {"template": "interview_reminder"},
                    "delay_minutes": 1440,
                },
                {
                    "type": "add_note",
                    "params": {"note": "Interview scheduled, notifications sent"},
                },
            ],
        },
    ),
    AutomationTemplate(
        id="senior_candidate_screening",
        name="Senior Screening",
        description="Special handling for candidates with 5+ years of experience",
        category="screening",
        definition={
            "trigger": {"type": "application_received", "params": {}},
            "conditions": [
                {
                    "field": "candidate.years_experience",
                    "operator": "greater_than_or_equal",
                    "value": 5,
                },
            ],
            "actions": [
                {"type": "add_tag", "params": {"tag": "senior-candidate"}},
                {
                    "type": "notify_manager",
                    "params": {
                        "message": "Senior candidate identified, priority review",
                        "channel": "slack",
                    },
                },
            ],
        },
    ),
)


def list_templates(category: str | None = None) -> list[AutomationTemplate]:
    if category is None:
        return list(_TEMPLATES)
    return [t for t in _TEMPLATES if t.category == category]


def get_template(template_id: str) -> AutomationTemplate:
    """
    Raises:
        TemplateNotFoundError: If no template has this id.
    """
    for template in _TEMPLATES:
        if template.id == template_id:
            return template
    raise TemplateNotFoundError(f"Template not found: {template_id}")
