from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ApiErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str
    code: str
    exception_name: str = Field(alias="exceptionName")
    exception_message: str = Field(alias="exceptionMessage")
    stacktrace: list[str] = Field(default_factory=list)


class LinkUpdate(BaseModel):
    """Сообщение об обновлении ссылки, которое scrapper передает боту"""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    url: str
    description: str
    tg_chat_ids: list[int] = Field(alias="tgChatIds")


class LinkResponse(BaseModel):
    id: int
    url: str
    tags: list[str] = Field(default_factory=list)
    filters: list[str] = Field(default_factory=list)


class AddLinkRequest(BaseModel):
    link: str
    tags: list[str] = Field(default_factory=list)
    filters: list[str] = Field(default_factory=list)


class ListLinksResponse(BaseModel):
    links: list[LinkResponse]
    size: int


class RemoveLinkRequest(BaseModel):
    link: str


class LinkInfo(BaseModel):
    link_id: int
    url: str
    last_check: datetime


class UpdateRecord(BaseModel):
    """Одно событие на отслеживаемом ресурсе (issue, ответ, комментарий...)"""

    kind: str
    author: str
    created_at: datetime
    preview: str


class TgChat(BaseModel):
    id: int


class TgUser(BaseModel):
    id: int


class TgMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chat: TgChat | None = None
    from_user: TgUser | None = Field(default=None, alias="from")
    text: str = ""


class TgUpdate(BaseModel):
    update_id: int
    message: TgMessage | None = None

    @property
    def chat_id(self) -> int | None:
        if self.message is None:
            return None
        if self.message.chat is not None:
            return self.message.chat.id
        if self.message.from_user is not None:
            return self.message.from_user.id
        return None


class BotCommand(BaseModel):
    command: str
    description: str
