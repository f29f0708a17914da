from fastapi import WebSocket, WebSocketDisconnect
from typing import Dict, Optional
from pydantic import BaseModel, ValidationError
from datetime import datetime, timezone

from tune_finder.capture import decode_frame
from tune_finder.config import AnalyzerConfig
from tune_finder.sessions.session_manager import ListeningSession, create_session, end_session
from tune_finder.tools.template_library import TemplateLibrary


class AudioEvent(BaseModel):
    type: str  # "start_session", "spectral_frame", "stop_session", "get_session_summary", ...
    data: Dict = {}
    timestamp: Optional[str] = None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def make_event(event_type: str, data: Dict) -> AudioEvent:
    return AudioEvent(type=event_type, data=data, timestamp=_timestamp())


class ConnectionManager:
    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, session_id: str, websocket: WebSocket):
        await websocket.accept()
        self.active_connections[session_id] = websocket

    def disconnect(self, session_id: str):
        if session_id in self.active_connections:
            del self.active_connections[session_id]

    async def send_event(self, session_id: str, event: AudioEvent):
        if session_id in self.active_connections:
            ws = self.active_connections[session_id]
            await ws.send_json(event.model_dump())

    async def send_error(self, session_id: str, message: str):
        await self.send_event(session_id, make_event("error", {"message": message}))


manager = ConnectionManager()


async def _handle_start(session: ListeningSession, event: AudioEvent):
    sample_rate = event.data.get("sample_rate", session.sample_rate)
    try:
        session.start(float(sample_rate) if sample_rate is not None else None)
    except (TypeError, ValueError) as e:
        await manager.send_error(session.session_id, f"Cannot start session: {e}")
        return

    await manager.send_event(session.session_id, make_event("session_started", {
        "session_id": session.session_id,
        "sample_rate": session.sample_rate,
        "bin_count": session.config.bin_count,
        "interval_ms": session.config.interval_ms,
        "buffer_capacity": session.buffer.capacity,
        "min_trajectory_length": session.config.min_trajectory_length,
        "templates": session.library.names,
    }))


async def _handle_frame(session: ListeningSession, event: AudioEvent):
    session_id = session.session_id
    if not session.is_listening:
        await manager.send_error(session_id, f"Session is {session.status.value}, send start_session first")
        return

    payload = event.data.get("frame")
    if not payload:
        await manager.send_error(session_id, "No frame data provided")
        return

    try:
        frame = decode_frame(payload, session.config.bin_count)
    except ValueError as e:
        await manager.send_error(session_id, str(e))
        return

    result = await session.submit_frame(frame)
    if result is None:
        # Stopped while the frame was queued
        return

    await manager.send_event(session_id, make_event("pitch_detected", {
        "frequency": round(result.frequency, 2),
        "pitch": result.pitch,
        "trajectory_length": result.trajectory_length,
    }))

    if result.match is not None:
        await manager.send_event(session_id, make_event("match_update", {
            "winner": result.match.name,
            "distance": round(result.match.distance, 2),
            "last_winner": session.aggregator.last_winner,
            "ranking": [row.model_dump() for row in session.aggregator.ranking()],
        }))


async def websocket_endpoint(
    websocket: WebSocket,
    session_id: str,
    library: TemplateLibrary,
    config: AnalyzerConfig,
):
    """WebSocket endpoint: spectral frames in, pitch and match events out."""
    await manager.connect(session_id, websocket)
    session = create_session(session_id, library, config=config)

    try:
        while True:
            data = await websocket.receive_json()
            try:
                event = AudioEvent(**data)
            except (TypeError, ValidationError) as e:
                await manager.send_error(session_id, f"Malformed event: {e}")
                continue

            if event.type == "start_session":
                await _handle_start(session, event)

            elif event.type == "spectral_frame":
                await _handle_frame(session, event)

            elif event.type == "stop_session":
                session.stop()
                await manager.send_event(session_id, make_event("session_stopped", session.get_session_summary()))

            elif event.type == "capture_failed":
                # Capture side could not deliver frames (e.g. permission denied)
                session.fail(event.data.get("reason", "capture failed"))
                await manager.send_event(session_id, make_event("session_failed", {
                    "session_id": session_id,
                    "reason": session.failure_reason,
                }))

            elif event.type == "get_session_summary":
                await manager.send_event(session_id, make_event("session_summary", session.get_session_summary()))

            else:
                await manager.send_event(session_id, make_event("event_received", {
                    "status": "ignored",
                    "original_type": event.type,
                }))

    except WebSocketDisconnect:
        print(f"[websocket] {session_id} disconnected")
    finally:
        end_session(session_id)
        manager.disconnect(session_id)
