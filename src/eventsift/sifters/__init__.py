"""
Sifters module for eventsift.

A sifter decides whether a relay should accept, reject or shadow-reject
one incoming event. Small sifters are composed into policies:

    from eventsift.schema import Mode
    from eventsift.sifters import pipeline, with_mod
    from eventsift.sifters.matchers import author_list, kind_list, pow_min_difficulty

    policy = pipeline(
        kind_list([1, 7], Mode.ALLOW),
        with_mod(pow_min_difficulty(20)).only_if_not(author_list(friends, Mode.ALLOW)),
    )
"""

from eventsift.sifters.base import (
    Sifter,
    SifterFunc,
    SifterUnit,
    accept_all,
    match_result_from_bool,
    should_accept,
)
from eventsift.sifters.combinators import (
    ConditionalSifter,
    Guard,
    ModdedSifter,
    OneOfSifter,
    PipelineSifter,
    if_not_then,
    if_then,
    one_of,
    pipeline,
    with_mod,
)
from eventsift.sifters.rejection import (
    Rejectable,
    RejectionFn,
    reject_with_msg,
    reject_with_msg_from_input,
    shadow_reject,
)

__all__ = [
    "ConditionalSifter",
    "Guard",
    "ModdedSifter",
    "OneOfSifter",
    "PipelineSifter",
    "Rejectable",
    "RejectionFn",
    "Sifter",
    "SifterFunc",
    "SifterUnit",
    "accept_all",
    "if_not_then",
    "if_then",
    "match_result_from_bool",
    "one_of",
    "pipeline",
    "reject_with_msg",
    "reject_with_msg_from_input",
    "shadow_reject",
    "should_accept",
    "with_mod",
]
