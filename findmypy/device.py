"""Find My device wrapper with typed request helpers."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .client import FindMyClient


FINDME_SERVICE = 'findme'
CLIENT_CONTEXT = {
    'appVersion': '1.0',
    'contextApp': 'com.icloud.web.fmf',
}


@dataclass
class DeviceLocation:
    """Last known position of a device."""
    latitude: float
    longitude: float
    altitude: Optional[float] = None
    accuracy: Optional[float] = None
    vertical_accuracy: Optional[float] = None


class FindMyDevice:
    """
    One device from the ``refreshClient`` listing.

    The helpers only build request bodies; every call goes through the
    client's dispatcher, and the reply's first ``content`` entry replaces
    the cached device info.
    """

    def __init__(self, client: FindMyClient, info: Dict[str, Any]):
        self._client = client
        self._info = info

    @property
    def raw_info(self) -> Dict[str, Any]:
        return self._info

    @property
    def id(self) -> str:
        return self._info.get('id', '')

    @property
    def name(self) -> str:
        return self._info.get('name', '')

    @property
    def model(self) -> Dict[str, Optional[str]]:
        return {
            'name': self._info.get('modelDisplayName'),
            'exact': self._info.get('deviceModel'),
        }

    @property
    def battery(self) -> Dict[str, Any]:
        level = self._info.get('batteryLevel') or 0
        return {
            'percentage': level * 100,
            'status': self._info.get('batteryStatus'),
        }

    @property
    def location(self) -> Optional[DeviceLocation]:
        """Last known location, or None when missing or zeroed."""
        location = self._info.get('location')
        if not location:
            return None
        if not location.get('latitude') or not location.get('longitude'):
            return None
        return DeviceLocation(
            latitude=location['latitude'],
            longitude=location['longitude'],
            altitude=location.get('altitude'),
            accuracy=location.get('horizontalAccuracy'),
            vertical_accuracy=location.get('verticalAccuracy'),
        )

    @property
    def is_locked(self) -> bool:
        return bool(self._info.get('activationLocked'))

    @property
    def is_lost(self) -> bool:
        return bool(self._info.get('lostModeCapable'))

    async def _send(self, path: str, payload: Dict[str, Any]) -> None:
        reply = await self._client.send_icloud_request(FINDME_SERVICE, path, {
            'device': self.id,
            'clientContext': dict(CLIENT_CONTEXT),
            **payload,
        })
        content = reply.get('content') if isinstance(reply, dict) else None
        if isinstance(content, list) and content and isinstance(content[0], dict):
            self._info = content[0]

    async def play_sound(self, subject: str = 'Find My iPhone Alert') -> None:
        await self._send('/fmipservice/client/web/playSound', {'subject': subject})

    async def send_message(self, text: str, subject: str = 'Find My iPhone Alert') -> None:
        await self._send('/fmipservice/client/web/sendMessage', {
            'vibrate': True,
            'userText': True,
            'sound': False,
            'subject': subject,
            'text': text,
        })

    async def start_lost_mode(self, message: str, phone_number: str) -> None:
        await self._send('/fmipservice/client/web/lostDevice', {
            'emailUpdates': True,
            'lostModeEnabled': True,
            'ownerNbr': phone_number,
            'text': message,
            'trackingEnabled': True,
            'userText': True,
        })

    async def stop_lost_mode(self) -> None:
        await self._send('/fmipservice/client/web/lostDevice', {
            'lostModeEnabled': False,
            'emailUpdates': False,
            'trackingEnabled': False,
            'userText': False,
        })

    def __repr__(self) -> str:
        return f"FindMyDevice(name={self.name!r}, id={self.id!r})"
