from collections.abc import Sequence

from link_tracker.api.notification_api.transports import UpdateTransport
from link_tracker.api.schemas.schemas import LinkInfo, LinkUpdate, UpdateRecord
from link_tracker.api.utils.string_makers import make_description
from link_tracker.database.base import SubscriptionStore
from link_tracker.logger.logger_init import logger


class NotificationService:
    """
    Сервис нотификации: по изменившейся ссылке находит подписчиков
    и отправляет им по одному LinkUpdate на каждое событие
    """

    def __init__(self, store: SubscriptionStore, transport: UpdateTransport):
        self.store = store
        self.transport = transport

    async def send(self, link: LinkInfo, updates: Sequence[UpdateRecord]) -> int:
        """
        :param link: ссылка, по которой пришли обновления
        :param updates: события от клиента сайта
        :return: количество отправленных LinkUpdate
        """
        chat_ids = await self.store.users_tracking(link.link_id)
        if not chat_ids:
            logger.info(f"На ссылку {link.url} никто не подписан, уведомления не отправляются")
            return 0

        for update in updates:
            await self.transport.send(
                LinkUpdate(
                    id=link.link_id,
                    url=link.url,
                    description=make_description(update),
                    tg_chat_ids=chat_ids,
                )
            )

        logger.debug(f"По ссылке {link.url} отправлено {len(updates)} обновлений {len(chat_ids)} чатам")
        return len(updates)
