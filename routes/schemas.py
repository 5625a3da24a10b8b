"""Request bodies shared by the chat routes."""

from typing import List, Literal, Optional

from pydantic import BaseModel

from models.chat_models import Attachment, Message, new_message_id


class AttachmentPayload(BaseModel):
    name: str = ""
    mimeType: str = ""
    inlineData: str = ""


class MessagePayload(BaseModel):
    id: str = ""
    role: Literal["user", "assistant", "system"]
    content: str
    attachments: Optional[List[AttachmentPayload]] = None

    def to_message(self) -> Message:
        attachments = tuple(
            Attachment(name=item.name, mime_type=item.mimeType, inline_data=item.inlineData)
            for item in self.attachments or []
        )
        return Message(
            id=self.id or new_message_id(self.role),
            role=self.role,
            content=self.content,
            attachments=attachments,
        )


class TurnPayload(BaseModel):
    messages: List[MessagePayload]
    model: Optional[str] = None
    contextOptimization: bool = True


class GeneratePayload(BaseModel):
    prompt: Optional[str] = None
    model: Optional[str] = None


class HistoryPayload(BaseModel):
    messages: List[MessagePayload] = []
