"""Core framework components for POKETERM."""

from .state import Screen, ScreenContext, StateMachine
from .events import EventBus, Event, EventType

__all__ = ["Screen", "ScreenContext", "StateMachine", "EventBus", "Event", "EventType"]
