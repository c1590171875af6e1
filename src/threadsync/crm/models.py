from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class Person(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _name_str(cls, v: Optional[str]) -> str:
        return v or ""

    @property
    def first_name(self) -> str:
        parts = self.name.split()
        return parts[0] if parts else ""


class Deal(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = ""
    person_id: Optional[int] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title_str(cls, v: Optional[str]) -> str:
        return v or ""

    @field_validator("person_id", mode="before")
    @classmethod
    def _person_ref(cls, v):
        # deal listings embed the person as {"value": id, "name": ...}
        if isinstance(v, dict):
            return v.get("value")
        return v


class Note(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    content: str = ""
    deal_id: Optional[int] = None

    @field_validator("content", mode="before")
    @classmethod
    def _content_str(cls, v: Optional[str]) -> str:
        return v or ""
