from __future__ import annotations

from typing import Literal, Tuple

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from ..errors import EmptyThreadError

UNKNOWN_DATE = "Unknown date"

Direction = Literal["sent", "received"]


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    time: str
    date: str = UNKNOWN_DATE
    direction: Direction

    @field_validator("id")
    @classmethod
    def _id_numeric(cls, v: str) -> str:
        if not v.isdigit():
            raise ValueError("message id must be a numeric string")
        return v

    @field_validator("text")
    @classmethod
    def _text_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("message text must not be empty")
        return v

    @property
    def numeric_id(self) -> int:
        return int(self.id)


class Thread(BaseModel):
    """
    Messages of one conversation, ascending by numeric id.
    skipped_ids lists message blocks that had no text payload.
    """

    model_config = ConfigDict(frozen=True)

    messages: Tuple[Message, ...] = ()
    skipped_ids: Tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_order(self) -> "Thread":
        ids = [m.numeric_id for m in self.messages]
        if any(a >= b for a, b in zip(ids, ids[1:])):
            raise ValueError("thread messages must be strictly ascending by id")
        return self

    def __len__(self) -> int:
        return len(self.messages)

    @property
    def opening_message(self) -> Message:
        if not self.messages:
            raise EmptyThreadError("No messages found in conversation")
        return self.messages[0]
