from .authority import claim_seat, may_simulate, seat_of, simulator_of, vet_game_update

__all__ = [
    "claim_seat",
    "may_simulate",
    "seat_of",
    "simulator_of",
    "vet_game_update",
]
