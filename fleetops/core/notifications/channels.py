# fleetops/core/notifications/channels.py
"""
Каналы доставки уведомлений: real-time трансляция (Redis pub/sub), FCM, APNs.
Каждый канал либо доставляет, либо пропускает, либо бросает исключение:
изоляцию ошибок обеспечивает NotificationFanout.
"""

from __future__ import annotations

from typing import Protocol

import httpx

from fleetops.common.constants import DeliveryStatus, TypeMsg
from fleetops.common.exceptions import PushDeliveryError
from fleetops.common.logger import log_info
from fleetops.core.drivers.models import Driver
from fleetops.core.notifications.messages import OrderNotification
from fleetops.core.orders.models import TenantScope
from fleetops.infra.redis_client import RedisClient


class DeliveryChannel(Protocol):
    """Канал доставки уведомления одному водителю."""

    name: str

    async def deliver(
        self,
        notification: OrderNotification,
        driver: Driver,
        scope: TenantScope,
    ) -> DeliveryStatus:
        ...


class BroadcastChannel:
    """Публикует уведомление во все топики компании и заказа."""

    name = "broadcast"

    def __init__(self, redis: RedisClient, api_version: str = "v1", channel_prefix: str = "") -> None:
        self._redis = redis
        self._api_version = api_version
        self._prefix = channel_prefix

    async def deliver(
        self,
        notification: OrderNotification,
        driver: Driver,
        scope: TenantScope,
    ) -> DeliveryStatus:
        payload = notification.to_broadcast(self._api_version)
        for channel in notification.broadcast_channels(scope, self._prefix):
            await self._redis.publish(channel, payload)
        return DeliveryStatus.SENT


class FcmChannel:
    """Firebase Cloud Messaging (HTTP v1)."""

    name = "fcm"

    def __init__(
        self,
        client: httpx.AsyncClient,
        project_id: str,
        access_token: str,
        url_template: str,
        enabled: bool = True,
    ) -> None:
        self._client = client
        self._url = url_template.format(project_id=project_id)
        self._access_token = access_token
        self._enabled = enabled and bool(project_id) and bool(access_token)

    async def deliver(
        self,
        notification: OrderNotification,
        driver: Driver,
        scope: TenantScope,
    ) -> DeliveryStatus:
        if not self._enabled or not driver.fcm_tokens:
            return DeliveryStatus.SKIPPED

        headers = {"Authorization": f"Bearer {self._access_token}"}
        errors: list[str] = []
        for token in driver.fcm_tokens:
            try:
                response = await self._client.post(self._url, json=notification.to_fcm(token), headers=headers)
                response.raise_for_status()
            except httpx.HTTPError as e:
                errors.append(f"{token[:8]}: {e}")
        if errors:
            raise PushDeliveryError(self.name, errors)

        await log_info(
            f"FCM: {notification.event} -> {driver.public_id} ({len(driver.fcm_tokens)} устр.)",
            type_msg=TypeMsg.DEBUG,
        )
        return DeliveryStatus.SENT


class ApnChannel:
    """Apple Push Notification service (HTTP/2, token auth)."""

    name = "apn"

    def __init__(
        self,
        client: httpx.AsyncClient,
        topic: str,
        auth_token: str,
        url_template: str,
        enabled: bool = True,
    ) -> None:
        self._client = client
        self._topic = topic
        self._auth_token = auth_token
        self._url_template = url_template
        self._enabled = enabled and bool(topic) and bool(auth_token)

    async def deliver(
        self,
        notification: OrderNotification,
        driver: Driver,
        scope: TenantScope,
    ) -> DeliveryStatus:
        if not self._enabled or not driver.apn_tokens:
            return DeliveryStatus.SKIPPED

        headers = {
            "authorization": f"bearer {self._auth_token}",
            "apns-topic": self._topic,
            "apns-push-type": "alert",
        }
        errors: list[str] = []
        for token in driver.apn_tokens:
            try:
                response = await self._client.post(
                    self._url_template.format(token=token),
                    json=notification.to_apn(),
                    headers=headers,
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                errors.append(f"{token[:8]}: {e}")
        if errors:
            raise PushDeliveryError(self.name, errors)

        return DeliveryStatus.SENT


def build_default_channels(redis: RedisClient, http_client: httpx.AsyncClient) -> list[DeliveryChannel]:
    """Набор каналов по настройкам: трансляция, FCM, APNs."""
    from fleetops.config import settings

    push = settings.push
    return [
        BroadcastChannel(
            redis,
            api_version=settings.dispatch.API_VERSION,
            channel_prefix=settings.dispatch.BROADCAST_CHANNEL_PREFIX,
        ),
        FcmChannel(
            http_client,
            project_id=push.FCM_PROJECT_ID,
            access_token=push.FCM_ACCESS_TOKEN,
            url_template=push.FCM_URL,
            enabled=push.FCM_ENABLED,
        ),
        ApnChannel(
            http_client,
            topic=push.APN_TOPIC,
            auth_token=push.APN_AUTH_TOKEN,
            url_template=push.APN_URL,
            enabled=push.APN_ENABLED,
        ),
    ]
