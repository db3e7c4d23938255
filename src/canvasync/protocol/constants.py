# Event name constants (stringly-typed protocol; canonical list lives here)

T_HELLO = "hello"

# client -> server
T_JOIN_ROOM = "join_room"
T_NEW_ELEMENT = "new_element"
T_FULL_SYNC = "full_sync"
T_CHAT_MESSAGE = "chat_message"
T_LASER_POINTER = "laser_pointer"
T_BACKGROUND_CHANGE = "background_change"
T_GAME_MOVE = "game_move"

# server -> clients
T_CANVAS_DATA = "canvas_data"
T_CHAT_HISTORY = "chat_history"
T_BACKGROUND_UPDATED = "background_updated"
T_ELEMENT_RECEIVED = "element_received"
T_CHAT_RECEIVED = "chat_received"
T_LASER_RECEIVED = "laser_received"
T_GAME_MOVE_RECEIVED = "game_move_received"

DEFAULT_BACKGROUND = "dots"

# Client-side timing (seconds)
ECHO_SUPPRESS_S = 0.5
SYNC_THROTTLE_S = 0.1
PADDLE_THROTTLE_S = 0.05  # tighter: paddle feel is latency-sensitive
LASER_LIFETIME_S = 2.0
SIM_INTERVAL_S = 1 / 60

# Inline image payloads ride on the socket, so frames can be large.
MAX_MESSAGE_BYTES = 100 * 1024 * 1024
MAX_UPLOAD_BYTES = 50 * 1024 * 1024
