"""Mensaje entrante tal como lo entrega el transporte."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class InboundMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sender_id: str = Field(alias="senderId", min_length=1)
    text: str = ""
    is_group_message: bool = Field(False, alias="isGroupMessage")
    group_id: Optional[str] = Field(None, alias="groupId")
    sender_name: Optional[str] = Field(None, alias="senderName")
