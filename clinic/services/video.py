"""
Video meeting providers.

The telemedicine service only needs a meeting descriptor (id, password,
join and host URLs) for each video appointment.  Which backend produces
it is chosen by ``settings.VIDEO_PROVIDER``; the default fabricates the
descriptor locally and never leaves the process.
"""
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone

import requests
from django.conf import settings
from django.utils.module_loading import import_string

from clinic.exceptions import ProviderError

logger = logging.getLogger(__name__)


@dataclass
class Meeting:
    meeting_id: str
    password: str
    join_url: str
    host_url: str
    start_time: datetime
    duration: int


class VideoProvider:
    def create_meeting(self, topic: str, start_time: datetime, duration: int) -> Meeting:
        raise NotImplementedError


class MockVideoProvider(VideoProvider):
    """Zoom-shaped descriptors with random ids; no network."""

    base_url = 'https://zoom.us'

    def create_meeting(self, topic, start_time, duration):
        meeting_id = str(100000000 + secrets.randbelow(900000000))
        password = ''.join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(8))
        return Meeting(
            meeting_id=meeting_id,
            password=password,
            join_url=f'{self.base_url}/j/{meeting_id}?pwd={password}',
            host_url=f'{self.base_url}/s/{meeting_id}?zak=mock-host-key&pwd={password}',
            start_time=start_time,
            duration=duration,
        )


class ZoomVideoProvider(VideoProvider):
    """Creates scheduled meetings through the Zoom REST API."""

    def create_meeting(self, topic, start_time, duration):
        url = f"{settings.ZOOM_API_BASE.rstrip('/')}/users/{settings.ZOOM_USER_ID}/meetings"
        body = {
            'topic': topic[:200],
            'type': 2,
            'start_time': start_time.astimezone(dt_timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ'),
            'duration': duration,
            'timezone': 'UTC',
        }
        headers = {'Authorization': f'Bearer {settings.ZOOM_ACCESS_TOKEN}'}
        try:
            r = requests.post(url, json=body, headers=headers, timeout=settings.VIDEO_PROVIDER_TIMEOUT)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning('zoom meeting creation failed: %s', e)
            raise ProviderError(f'Video provider request failed: {e}')
        if not data.get('id') or not data.get('join_url'):
            raise ProviderError('Invalid response from video provider')
        return Meeting(
            meeting_id=str(data['id']),
            password=data.get('password') or '',
            join_url=data['join_url'],
            host_url=data.get('start_url') or data['join_url'],
            start_time=start_time,
            duration=int(data.get('duration') or duration),
        )


def get_video_provider() -> VideoProvider:
    return import_string(settings.VIDEO_PROVIDER)()
