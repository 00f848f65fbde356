"""Free-text message classifier: one language model call, strict JSON contract.

The model does the language understanding; this module owns the prompt, the
timeout and the validation of the reply. ``classify`` never raises: every
failure becomes an ERROR message carrying the original text verbatim.
"""
from __future__ import annotations

import asyncio
import datetime as _dt
import json
import logging
import re
from typing import TYPE_CHECKING, Any, List, Optional

from pydantic import ValidationError as SchemaError

from klinikasistan.core.enums import ExpenseCategory, TreatmentType
from klinikasistan.core.exceptions import ParseError
from klinikasistan.core.formatting import TURKISH_DAYS_ACCENTED, sunday_weekday
from klinikasistan.orchestrator.dates import DateResolver
from klinikasistan.orchestrator.types import ErrorMessage, ParsedMessage, parsed_message_adapter

if TYPE_CHECKING:
    from klinikasistan.clients.llm.base import BaseLLMClient, LLMMessage

logger = logging.getLogger(__name__)

PARSE_FAILED = "Mesaj parse edilemedi"
NO_REPLY = "AI yanıt vermedi"

_SYSTEM_PROMPT = """\
Sen bir klinik mesaj ayrıştırıcısısın. Doktorun gönderdiği kısa mesajları yapılandırılmış veriye çeviriyorsun.

Bugün: {today} ({weekday})

Mesaj tipleri:

1. RANDEVU: Hasta adı + gün/saat + işlem türü içerir.
   - "Ayşe Erdoğan pazartesi saat 3 botoks kontrol" → randevu
   - "Mehmet yarın 14:30 dolgu" → randevu

2. GELİR/TEDAVİ: Hasta adı + işlem + tutar. "alındı", "ödendi", "TL", "lira" ipucudur.
   - "Kerem İnanır dolgu 5000tl alındı" → gelir
   - "Fatma hanım botoks 3500 lira" → gelir

3. GİDER: Hasta adı YOK; ürün/malzeme/kira/fatura + tutar.
   - "Kira 25000 ödendi" → gider
   - "Elektrik faturası 3500tl" → gider

4. STOK: Ürün adı + adet; "geldi", "girdi" stok girişi, "kullanıldı", "çıktı" stok çıkışı.
   - "10 kutu Nurederm geldi" → stok girişi
   - "2 şırınga botoks kullanıldı" → stok çıkışı

Kurallar:
- "saat 3" → "15:00" (mesai saati varsayımı)
- "yarın" → bugünün ertesi günü; "pazartesi" → gelecek pazartesi (bugün pazartesiyse bir sonraki hafta)
- Tarihler YYYY-MM-DD, saatler HH:MM
- Tutarları kuruşa çevir: TL tutarı × 100 (5000tl → 500000)
- İşlem türleri: {treatment_types}
- Gider kategorileri: {expense_categories}
- "botoks"/"botox" → BOTOX, "dolgu"/"filler" → DOLGU, "diş" → DIS_TEDAVI
- Birden fazla anlam mümkünse AMBIGUOUS döndür ve seçenekleri listele

SADECE tek bir JSON nesnesi döndür, başka hiçbir şey yazma."""

_USER_PROMPT = """\
Mesajı parse et: "{text}"

RANDEVU ise:
{{"type":"APPOINTMENT","patientName":"...","date":"YYYY-MM-DD","time":"HH:MM","treatmentType":"BOTOX|DOLGU|DIS_TEDAVI|GENEL","notes":"..."}}

GELİR ise:
{{"type":"INCOME","patientName":"...","treatmentType":"BOTOX|DOLGU|DIS_TEDAVI|GENEL","treatmentName":"...","amount":kuruş_cinsinden_sayı,"notes":"..."}}

GİDER ise:
{{"type":"EXPENSE","description":"...","amount":kuruş_cinsinden_sayı,"category":"MALZEME|KIRA|FATURA|MAAS|DIGER"}}

STOK GİRİŞİ veya ÇIKIŞI ise:
{{"type":"STOCK_IN|STOCK_OUT","productName":"...","quantity":adet,"unitPrice":kuruş_cinsinden_sayı,"notes":"..."}}

Belirsizse:
{{"type":"AMBIGUOUS","message":"...","options":["...","..."]}}

Anlayamıyorsan:
{{"type":"ERROR","message":"Mesaj anlaşılamadı","originalText":"..."}}"""

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_DECODER = json.JSONDecoder()


def build_messages(text: str, today: _dt.date) -> List["LLMMessage"]:
    system = _SYSTEM_PROMPT.format(
        today=today.isoformat(),
        weekday=TURKISH_DAYS_ACCENTED[sunday_weekday(today)],
        treatment_types=", ".join(t.value for t in TreatmentType),
        expense_categories=", ".join(c.value for c in ExpenseCategory),
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": _USER_PROMPT.format(text=text)},
    ]


def extract_json(raw: str) -> Optional[Any]:
    """First JSON object in a reply; tolerates code fences and surrounding prose."""
    candidate = raw.strip()
    fenced = _FENCE_RE.search(candidate)
    if fenced:
        candidate = fenced.group(1).strip()
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass
    # Prose may hold other braces; take the first position that decodes to an object
    start = candidate.find("{")
    while start != -1:
        try:
            value, _ = _DECODER.raw_decode(candidate, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            return value
        start = candidate.find("{", start + 1)
    return None


class MessageClassifier:
    """Turn one free-text message into a ``ParsedMessage``.

    Stateless per call; conversation history is the caller's concern.
    """

    def __init__(
        self,
        llm: "BaseLLMClient",
        resolver: DateResolver,
        *,
        timeout_seconds: Optional[float] = 30.0,
    ) -> None:
        self._llm = llm
        self._resolver = resolver
        self._timeout = timeout_seconds

    async def classify(self, text: str, now: _dt.datetime) -> ParsedMessage:
        messages = build_messages(text, self._resolver.today(now))
        try:
            coro = self._llm.chat(messages, json_output=True)
            if self._timeout is not None and self._timeout > 0:
                coro = asyncio.wait_for(coro, timeout=self._timeout)
            raw = await coro
        except asyncio.TimeoutError:
            logger.warning("MessageClassifier: model timed out after %.0fs", self._timeout or 0)
            return ErrorMessage(message=PARSE_FAILED, original_text=text)
        except Exception as exc:
            logger.error("MessageClassifier: model call failed: %s", exc)
            return ErrorMessage(message=PARSE_FAILED, original_text=text)

        if not raw or not raw.strip():
            return ErrorMessage(message=NO_REPLY, original_text=text)
        return self.parse_reply(raw, text)

    @staticmethod
    def validate_reply(raw: str) -> ParsedMessage:
        """Reply text to a contract message; raises ParseError."""
        data = extract_json(raw)
        if not isinstance(data, dict):
            raise ParseError(PARSE_FAILED, details={"reason": "no JSON object", "raw": raw[:300]})
        try:
            return parsed_message_adapter.validate_python(data)
        except SchemaError as exc:
            raise ParseError(
                PARSE_FAILED,
                details={"reason": f"{exc.error_count()} schema errors", "raw": raw[:300]},
                cause=exc,
            ) from exc

    @classmethod
    def parse_reply(cls, raw: str, original_text: str) -> ParsedMessage:
        """Validated message, or ERROR carrying the user's own text."""
        try:
            parsed = cls.validate_reply(raw)
        except ParseError as exc:
            logger.warning("MessageClassifier: unusable reply (%s): %s", exc.details["reason"], exc.details["raw"])
            return ErrorMessage(message=exc.message, original_text=original_text)
        if isinstance(parsed, ErrorMessage):
            # The model may paraphrase the input; keep what the user actually sent.
            return parsed.model_copy(update={"original_text": original_text})
        return parsed
