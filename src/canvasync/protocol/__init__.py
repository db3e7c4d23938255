from .constants import (
    T_BACKGROUND_CHANGE,
    T_BACKGROUND_UPDATED,
    T_CANVAS_DATA,
    T_CHAT_HISTORY,
    T_CHAT_MESSAGE,
    T_CHAT_RECEIVED,
    T_ELEMENT_RECEIVED,
    T_FULL_SYNC,
    T_GAME_MOVE,
    T_GAME_MOVE_RECEIVED,
    T_HELLO,
    T_JOIN_ROOM,
    T_LASER_POINTER,
    T_LASER_RECEIVED,
    T_NEW_ELEMENT,
)

__all__ = [
    "T_HELLO",
    "T_JOIN_ROOM",
    "T_NEW_ELEMENT",
    "T_FULL_SYNC",
    "T_CHAT_MESSAGE",
    "T_LASER_POINTER",
    "T_BACKGROUND_CHANGE",
    "T_GAME_MOVE",
    "T_CANVAS_DATA",
    "T_CHAT_HISTORY",
    "T_BACKGROUND_UPDATED",
    "T_ELEMENT_RECEIVED",
    "T_CHAT_RECEIVED",
    "T_LASER_RECEIVED",
    "T_GAME_MOVE_RECEIVED",
]
