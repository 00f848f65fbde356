"""ReminderRuleService: per-treatment recall rules that feed the due-set calculator."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.core.enums import TreatmentType
from klinikasistan.core.exceptions import NotFoundError, ValidationError
from klinikasistan.infra.database.models.reminder import Reminder
from klinikasistan.infra.database.repositories.reminder import ReminderRepository

logger = logging.getLogger(__name__)

MIN_TEMPLATE_LENGTH = 5
RULE_NOT_FOUND = "Hatırlatma kuralı bulunamadı"


def _check_interval(interval_days: int) -> None:
    if interval_days < 1:
        raise ValidationError("Gün sayısı en az 1 olmalı", details={"interval_days": interval_days})


def _clean_template(template: str) -> str:
    cleaned = (template or "").strip()
    if len(cleaned) < MIN_TEMPLATE_LENGTH:
        raise ValidationError(
            f"Mesaj şablonu en az {MIN_TEMPLATE_LENGTH} karakter olmalı", details={"message_template": template}
        )
    return cleaned


class ReminderRuleService:
    def __init__(self, session: AsyncSession) -> None:
        self._rules = ReminderRepository(session)

    async def list_rules(self, clinic_id: UUID) -> List[Reminder]:
        """All rules of the clinic, newest first, inactive ones included."""
        return await self._rules.list_for_clinic(clinic_id)

    async def create_rule(
        self,
        clinic_id: UUID,
        *,
        treatment_category: TreatmentType,
        interval_days: int,
        message_template: str,
        is_active: bool = True,
    ) -> Reminder:
        _check_interval(interval_days)
        rule = await self._rules.create({
            "clinic_id": clinic_id,
            "treatment_category": treatment_category,
            "interval_days": interval_days,
            "message_template": _clean_template(message_template),
            "is_active": is_active,
        })
        logger.info(
            "ReminderRuleService: rule %s every %d days", treatment_category.value, interval_days,
            extra={"clinic_id": str(clinic_id)},
        )
        return rule

    async def update_rule(self, rule_id: UUID, clinic_id: UUID, changes: Dict[str, Any]) -> Reminder:
        """Partial update; keys left out of ``changes`` keep their value."""
        rule: Optional[Reminder] = await self._rules.get_for_clinic(rule_id, clinic_id)
        if rule is None:
            raise NotFoundError(RULE_NOT_FOUND, details={"reminder_id": str(rule_id)})
        data = dict(changes)
        if "interval_days" in data:
            _check_interval(data["interval_days"])
        if "message_template" in data:
            data["message_template"] = _clean_template(data["message_template"])
        if not data:
            return rule
        return await self._rules.update(rule.id, data)
