"""
Rejection strategies.

A rejection strategy turns a request into a non-accepting decision. It is
a pure function of the request, chosen when a sifter is built and
optionally replaced through the fluent methods of Rejectable.
"""

from collections.abc import Callable
from typing import Self

from eventsift.schema import Decision, Mode, Request

RejectionFn = Callable[[Request], Decision]


def shadow_reject(request: Request) -> Decision:
    """Reject the request without telling the client."""
    return request.shadow_reject()


def reject_with_msg(msg: str) -> RejectionFn:
    """Build a strategy that rejects with a fixed message."""

    def reject(request: Request) -> Decision:
        return request.reject(msg)

    return reject


def reject_with_msg_from_input(get_msg: Callable[[Request], str]) -> RejectionFn:
    """Build a strategy that rejects with a message derived from the request."""

    def reject(request: Request) -> Decision:
        return request.reject(get_msg(request))

    return reject


def select_msg_by_mode(mode: Mode, msg_allow: str, msg_deny: str) -> str:
    """Pick the message matching the sifter's mode."""
    if mode is Mode.ALLOW:
        return msg_allow
    if mode is Mode.DENY:
        return msg_deny
    return ""


def reject_with_msg_per_mode(mode: Mode, msg_allow: str, msg_deny: str) -> RejectionFn:
    """Build a fixed-message strategy whose message depends on the mode."""
    return reject_with_msg(select_msg_by_mode(mode, msg_allow, msg_deny))


class Rejectable:
    """
    Mixin for sifters with a replaceable rejection strategy.

    Subclasses set ``self._reject`` in their constructor. The fluent
    methods are meant to be called while the tree is being built, before
    it evaluates any request.
    """

    _reject: RejectionFn

    def shadow_reject(self) -> Self:
        """Pretend to accept rejected inputs, but actually drop them."""
        self._reject = shadow_reject
        return self

    def reject_with_msg(self, msg: str) -> Self:
        """Reject with the given message."""
        self._reject = reject_with_msg(msg)
        return self

    def reject_with_msg_from_input(self, get_msg: Callable[[Request], str]) -> Self:
        """Reject with a message computed from the request."""
        self._reject = reject_with_msg_from_input(get_msg)
        return self
