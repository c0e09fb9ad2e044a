"""Event bus using Observer Pattern."""
from .event_emitter import EventBus, UploadEvent

__all__ = [
    'EventBus',
    'UploadEvent',
]
