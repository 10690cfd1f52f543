"""
Proof-of-work matcher (NIP-13).

Only the difficulty actually achieved by the event ID is checked; the
target difficulty declared in the nonce tag is not.
"""

from eventsift.schema import REJECT_PREFIX_POW, MatchResult, Mode, Request, build_reject_message
from eventsift.sifters.base import SifterUnit, match_result_from_bool
from eventsift.sifters.rejection import reject_with_msg

_NIBBLE_LEADING_ZEROS = {
    "0": 4,
    "1": 3,
    "2": 2, "3": 2,
    "4": 1, "5": 1, "6": 1, "7": 1,
    "8": 0, "9": 0, "a": 0, "b": 0, "c": 0, "d": 0, "e": 0, "f": 0,
}


def leading_zero_bits(event_id: str) -> int:
    """
    Count the leading zero bits of a hex-encoded event ID.

    Raises:
        ValueError: If the ID contains a non-hex (or uppercase) character
    """
    bits = 0
    for ch in event_id:
        lzs = _NIBBLE_LEADING_ZEROS.get(ch)
        if lzs is None:
            msg = f"unexpected character in event ID: {ch!r}"
            raise ValueError(msg)
        bits += lzs
        if ch != "0":
            break
    return bits


def pow_min_difficulty(min_difficulty: int) -> SifterUnit:
    """Accept events whose PoW difficulty is at least min_difficulty."""

    def match_input(request: Request) -> MatchResult:
        return match_result_from_bool(leading_zero_bits(request.event.id) >= min_difficulty)

    return SifterUnit(
        match_input,
        Mode.ALLOW,
        reject_with_msg(
            build_reject_message(REJECT_PREFIX_POW, f"difficulty is less than {min_difficulty}")
        ),
        name="pow_min_difficulty",
    )
