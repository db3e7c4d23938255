from __future__ import annotations

import time
import uuid
from typing import Annotated, Any, Literal, Optional, TypeAlias, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

# Wire fields are camelCase (brushSize, gameType, playerLeft, ...); Python side is snake_case.
# Unknown fields are kept so a client's extras survive the round trip through the server.


def new_element_id() -> str:
    return uuid.uuid4().hex[:16]


def now_ms() -> int:
    return int(time.time() * 1000)


def _room_key(v: Any) -> Any:
    # Clients commonly use numeric room ids; the store keys on strings.
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    return v


RoomId: TypeAlias = Annotated[str, BeforeValidator(_room_key)]
Mark: TypeAlias = Literal["X", "O"]
Background: TypeAlias = Literal["white", "dots", "grid", "lines", "dark", "blueprint"]


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Point(WireModel):
    x: float
    y: float


class _ElementBase(WireModel):
    id: str = Field(default_factory=new_element_id)


class LineElement(_ElementBase):
    type: Literal["line"] = "line"
    color: str = "#000000"
    brush_size: float = 3
    # "shape" marks a freehand draft waiting for the recognizer
    tool: Literal["pen", "highlighter", "marker", "shape"] = "pen"
    opacity: Optional[float] = None
    points: list[Point] = Field(default_factory=list)


class ShapeElement(_ElementBase):
    type: Literal["shape"] = "shape"
    shape_type: Literal["line", "circle", "ellipse", "rectangle", "square", "triangle"]
    color: str = "#000000"
    brush_size: float = 3
    # geometry depends on shape_type
    points: Optional[list[Point]] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    radius: Optional[float] = None
    radius_x: Optional[float] = None
    radius_y: Optional[float] = None


class TextElement(_ElementBase):
    type: Literal["text"] = "text"
    content: str
    x: float
    y: float
    color: str = "#000000"
    text_size: float = 18


class ImageElement(_ElementBase):
    type: Literal["image"] = "image"
    data: str
    x: float
    y: float
    width: float
    height: float


class TicTacToeGame(_ElementBase):
    type: Literal["game"] = "game"
    game_type: Literal["tictactoe"] = "tictactoe"
    x: float = 0
    y: float = 0
    size: float = 300
    board: list[Optional[Mark]] = Field(
        default_factory=lambda: [None] * 9, min_length=9, max_length=9
    )
    current_player: Mark = "X"
    winner: Optional[Literal["X", "O", "Draw"]] = None
    win_line: Optional[list[int]] = None
    player_x: Optional[str] = None
    player_o: Optional[str] = None


class Ball(WireModel):
    x: float = 300
    y: float = 200
    dx: float = 4
    dy: float = 3
    radius: float = 8


class Paddle(WireModel):
    x: float
    y: float = 170
    width: float = 12
    height: float = 60
    score: int = 0


class PingPongGame(_ElementBase):
    type: Literal["game"] = "game"
    game_type: Literal["pingpong"] = "pingpong"
    x: float = 0
    y: float = 0
    width: float = 600
    height: float = 400
    ball: Ball = Field(default_factory=Ball)
    paddle_left: Paddle = Field(default_factory=lambda: Paddle(x=20))
    paddle_right: Paddle = Field(default_factory=lambda: Paddle(x=568))
    player_left: Optional[str] = None
    player_right: Optional[str] = None
    game_started: bool = False
    paused: bool = False
    winner: Optional[Literal["left", "right"]] = None
    last_update: int = Field(default_factory=now_ms)


GameElement: TypeAlias = Annotated[
    Union[TicTacToeGame, PingPongGame], Field(discriminator="game_type")
]
Element: TypeAlias = Annotated[
    Union[LineElement, ShapeElement, TextElement, ImageElement, GameElement],
    Field(discriminator="type"),
]

ELEMENT = TypeAdapter(Element)
ELEMENTS = TypeAdapter(list[Element])


class ChatEntry(WireModel):
    text: str
    sender_id: str
    timestamp: int = Field(default_factory=now_ms)


class Laser(WireModel):
    points: list[Point]
    timestamp: int = Field(default_factory=now_ms)


# ---- client -> server ----


class JoinRoom(WireModel):
    t: Literal["join_room"]
    room: RoomId


class NewElement(WireModel):
    t: Literal["new_element"]
    room: RoomId
    element: Element


class FullSync(WireModel):
    t: Literal["full_sync"]
    room: RoomId
    data: list[Element]


class ChatMessage(WireModel):
    t: Literal["chat_message"]
    room: RoomId
    text: str


class LaserPointer(WireModel):
    t: Literal["laser_pointer"]
    room: RoomId
    laser: Laser


class BackgroundChange(WireModel):
    t: Literal["background_change"]
    room: RoomId
    background: Background


class GameMove(WireModel):
    t: Literal["game_move"]
    room: RoomId
    game_index: Optional[int] = None
    game: GameElement


InboundMsg: TypeAlias = Annotated[
    Union[JoinRoom, NewElement, FullSync, ChatMessage, LaserPointer, BackgroundChange, GameMove],
    Field(discriminator="t"),
]
INBOUND = TypeAdapter(InboundMsg)


def parse_inbound(raw: dict[str, Any]) -> InboundMsg:
    """Validate one client frame; raises pydantic.ValidationError on anything malformed."""
    return INBOUND.validate_python(raw)


def dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def dump_all(models: list[Any]) -> list[dict[str, Any]]:
    return [dump(m) for m in models]


def envelope(t: str, **fields: Any) -> dict[str, Any]:
    return {"t": t, **fields}
