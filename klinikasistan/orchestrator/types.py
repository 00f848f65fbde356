"""Message contract between the language model and the action dispatcher.

A parsed message is exactly one of the tagged shapes below, discriminated by
``type``. Field names follow the camelCase JSON the model is asked to emit;
Python code uses the snake_case attributes.
"""
from __future__ import annotations

import datetime as _dt
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from klinikasistan.core.enums import ExpenseCategory, TreatmentType

_TIME_RE = re.compile(r"^\s*(\d{1,2})[:.](\d{2})\s*$")


class MessageType(str, Enum):
    APPOINTMENT = "APPOINTMENT"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    STOCK_IN = "STOCK_IN"
    STOCK_OUT = "STOCK_OUT"
    AMBIGUOUS = "AMBIGUOUS"
    ERROR = "ERROR"


def _upper(value: Any) -> Any:
    return value.strip().upper() if isinstance(value, str) else value


class _Parsed(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class AppointmentMessage(_Parsed):
    type: Literal["APPOINTMENT"] = "APPOINTMENT"
    patient_name: str = Field(min_length=1)
    date: _dt.date
    time: str
    treatment_type: TreatmentType = TreatmentType.GENEL
    notes: str = ""

    @field_validator("treatment_type", mode="before")
    @classmethod
    def upper_enum(cls, value: Any) -> Any:
        return _upper(value)

    @field_validator("time")
    @classmethod
    def check_time(cls, value: str) -> str:
        m = _TIME_RE.match(value)
        if not m or int(m.group(1)) > 23 or int(m.group(2)) > 59:
            raise ValueError(f"time must be HH:MM, got {value!r}")
        return f"{int(m.group(1)):02d}:{m.group(2)}"


class IncomeMessage(_Parsed):
    type: Literal["INCOME"] = "INCOME"
    patient_name: str = Field(min_length=1)
    treatment_type: TreatmentType = TreatmentType.GENEL
    treatment_name: str = ""
    amount: int = Field(gt=0, description="kuruş")
    notes: str = ""

    @field_validator("treatment_type", mode="before")
    @classmethod
    def upper_enum(cls, value: Any) -> Any:
        return _upper(value)


class ExpenseMessage(_Parsed):
    type: Literal["EXPENSE"] = "EXPENSE"
    description: str = Field(min_length=1)
    amount: int = Field(gt=0, description="kuruş")
    category: ExpenseCategory = ExpenseCategory.DIGER

    @field_validator("category", mode="before")
    @classmethod
    def upper_enum(cls, value: Any) -> Any:
        return _upper(value)


class _StockMessage(_Parsed):
    product_name: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    unit_price: int = Field(default=0, ge=0, description="kuruş")
    notes: str = ""


class StockInMessage(_StockMessage):
    type: Literal["STOCK_IN"] = "STOCK_IN"


class StockOutMessage(_StockMessage):
    type: Literal["STOCK_OUT"] = "STOCK_OUT"


class AmbiguousMessage(_Parsed):
    type: Literal["AMBIGUOUS"] = "AMBIGUOUS"
    message: str
    options: List[str] = Field(default_factory=list)


class ErrorMessage(_Parsed):
    type: Literal["ERROR"] = "ERROR"
    message: str
    original_text: str = ""


ParsedMessage = Annotated[
    Union[
        AppointmentMessage,
        IncomeMessage,
        ExpenseMessage,
        StockInMessage,
        StockOutMessage,
        AmbiguousMessage,
        ErrorMessage,
    ],
    Field(discriminator="type"),
]

parsed_message_adapter: TypeAdapter[ParsedMessage] = TypeAdapter(ParsedMessage)


@dataclass
class DispatchResult:
    """Outcome of executing a parsed message."""

    success: bool
    confirmation_text: str
    record_id: Optional[UUID] = None
    patient_is_new: Optional[bool] = None


@dataclass
class CommandResult:
    """Outcome of routing raw text through the slash-command table."""

    is_command: bool
    response_text: str = ""


@dataclass
class PipelineResult:
    """What a channel replies with after one inbound message."""

    is_command: bool
    success: bool
    reply_text: str
    parsed: Optional[Any] = None
    record_id: Optional[UUID] = None
    patient_is_new: Optional[bool] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
