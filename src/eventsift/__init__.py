"""
eventsift - Composable event sifters for Nostr relays.

An event sifter is a relay write-policy plugin: for every event a client
(or another relay) submits, it answers accept, reject or shadow-reject.
eventsift provides:
- Small, independently testable sifters (author, kind, content, source IP, PoW...)
- Combinators to compose them (pipeline, one_of, if_then) with modifiers
- Per-user rate limiting (GCRA)
- A runner speaking the relay's JSON-lines plugin protocol

Example usage:
    $ eventsift run my_relay.policy:build
    $ eventsift check my_relay.policy:build requests.jsonl
"""

__version__ = "0.1.0"
__author__ = "eventsift Contributors"

__all__ = [
    "__version__",
    "__author__",
]
