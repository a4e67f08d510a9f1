import json
from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from clinic.models import TelemedicineSession
from clinic.permissions import check_access
from clinic.services.telemedicine import group_name


@database_sync_to_async
def _load_session(session_id):
    return (TelemedicineSession.objects
            .select_related('appointment__patient', 'appointment__doctor')
            .filter(pk=session_id).first())


class TelemedicineStatusConsumer(AsyncWebsocketConsumer):
    """Read-only feed of status changes for one telemedicine session.

    Close codes: 4001 unauthenticated, 4003 forbidden, 4004 unknown session.
    """

    async def connect(self):
        self.session_id = self.scope["url_route"]["kwargs"]["session_id"]
        user = self.scope.get("user") or AnonymousUser()
        if not user.is_authenticated:
            await self.close(code=4001)
            return

        session = await _load_session(self.session_id)
        if session is None:
            await self.close(code=4004)
            return

        appt = session.appointment
        if not check_access(user, appt.patient.user_id, appt.doctor.user_id):
            await self.close(code=4003)
            return

        self.group_name = group_name(self.session_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send(json.dumps({
            "type": "status",
            "sessionId": str(session.id),
            "appointmentId": str(session.appointment_id),
            "status": session.status,
        }))

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # status changes only come from the REST endpoints
        await self.send(json.dumps({"type": "error", "code": 4005, "message": "read_only"}))

    async def session_status(self, event):
        payload = {k: v for k, v in event.items() if k != "type"}
        await self.send(json.dumps({"type": "status", **payload}))
