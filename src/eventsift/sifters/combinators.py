"""
Sifter combinators and modifiers.

Combinators compose small sifters into one:
- pipeline: accepts if every child accepts (AND, fail-fast)
- one_of: accepts as soon as one child accepts (OR)
- if_then / if_not_then: applies a body only when a condition holds

Modifiers (with_mod) attach metadata that combinators inspect:
- label: name of the child in logs
- accept_early: a Pipeline accepts immediately when this child accepts
- only_if / only_if_not: the child is skipped unless its guard holds

Each combinator owns an immutable tuple of children fixed at construction.
Combinators never catch failures raised by their children.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Self

import structlog

from eventsift.errors import EventSiftError, GuardError
from eventsift.schema import Action, Decision, Request, REJECT_PREFIX_BLOCKED, build_reject_message
from eventsift.sifters.base import Sifter
from eventsift.sifters.rejection import Rejectable, reject_with_msg

logger = structlog.get_logger(__name__)

ONE_OF_DEFAULT_REJECT_MSG = build_reject_message(
    REJECT_PREFIX_BLOCKED, "any of sub-sifters didn't accept the event"
)


# =============================================================================
# Modifiers
# =============================================================================


@dataclass(frozen=True)
class Guard:
    """
    Condition deciding whether a modded sifter is applied.

    Attributes:
        cond: Sifter evaluated against the request
        if_accepted: Apply the guarded sifter when cond accepts (True)
            or when it doesn't (False)
    """

    cond: Sifter
    if_accepted: bool = True

    def evaluate(self, request: Request) -> bool:
        """Return True if the guarded sifter should be applied."""
        res = self.cond.sift(request)
        return (res.action is Action.ACCEPT) == self.if_accepted


class ModdedSifter(Sifter):
    """
    A sifter with modifiers that change its behavior inside combinators.

    Calling sift() directly just delegates to the wrapped sifter: the
    label, accept-early flag and guard only matter to pipeline / one_of.
    Build instances with with_mod() rather than directly.
    """

    def __init__(
        self,
        sifter: Sifter,
        label: str = "",
        accept_early: bool = False,
        guard: Guard | None = None,
    ) -> None:
        self.sifter = sifter
        self._label = label
        self._accept_early = accept_early
        self.guard = guard

    def sift(self, request: Request) -> Decision:
        return self.sifter.sift(request)

    @property
    def label_text(self) -> str:
        return self._label

    @property
    def is_accept_early(self) -> bool:
        return self._accept_early

    def label(self, label: str) -> Self:
        """Label the sifter for logs."""
        self._label = label
        return self

    def accept_early(self) -> Self:
        """
        Set the "accept early" flag.

        When this sifter accepts inside a pipeline, the pipeline accepts
        immediately and skips every sifter after it.
        """
        self._accept_early = True
        return self

    def only_if(self, cond: Sifter) -> Self:
        """Apply the sifter inside combinators only if cond accepts."""
        self.guard = Guard(cond=cond, if_accepted=True)
        return self

    def only_if_not(self, cond: Sifter) -> Self:
        """Apply the sifter inside combinators only if cond doesn't accept."""
        self.guard = Guard(cond=cond, if_accepted=False)
        return self

    def copy_with_label(self, label: str) -> "ModdedSifter":
        return ModdedSifter(self.sifter, label, self._accept_early, self.guard)

    def guard_allows(self, request: Request) -> bool:
        """
        Evaluate the guard, if any.

        Raises:
            GuardError: If the guard condition fails
        """
        if self.guard is None:
            return True
        try:
            return self.guard.evaluate(request)
        except Exception as e:
            underlying = e.message if isinstance(e, EventSiftError) else str(e)
            raise GuardError(
                label=self._label,
                event_id=request.event.id,
                underlying_error=underlying,
            ) from e

    def __repr__(self) -> str:
        return (
            f"ModdedSifter(label={self._label!r}, accept_early={self._accept_early}, "
            f"guarded={self.guard is not None})"
        )


def with_mod(sifter: Sifter) -> ModdedSifter:
    """
    Make the sifter modifiable by sifter modifiers.

    Example:
        short_notes = (
            with_mod(content_matcher(lambda c: len(c) <= 140, Mode.ALLOW))
            .label("short notes")
            .only_if(kind_list([1], Mode.ALLOW))
        )
    """
    if isinstance(sifter, ModdedSifter):
        return ModdedSifter(sifter.sifter, sifter.label_text, sifter.is_accept_early, sifter.guard)
    return ModdedSifter(sifter)


def _assign_default_labels(sifters: Iterable[Sifter]) -> tuple[ModdedSifter, ...]:
    """Wrap children in ModdedSifter, labelling unlabelled ones by index."""
    modded: list[ModdedSifter] = []
    for i, s in enumerate(sifters):
        default_label = f"sifter #{i}"
        if isinstance(s, ModdedSifter):
            modded.append(s.copy_with_label(s.label_text or default_label))
        else:
            modded.append(ModdedSifter(s, label=default_label))
    return tuple(modded)


# =============================================================================
# Pipeline
# =============================================================================


class PipelineSifter(Sifter):
    """
    Combinator accepting an input only if all children accept it.

    Children are applied in order:
        1. A child whose guard doesn't hold is skipped.
        2. A failing child aborts the pipeline with its failure.
        3. An accepting child flagged accept_early makes the pipeline
           accept right away.
        4. The first non-accepting child's decision is returned as is.
    If nothing rejected (including when every child was skipped), the
    pipeline accepts.

    Build instances with pipeline() rather than directly.
    """

    def __init__(self, children: tuple[ModdedSifter, ...], name: str = "") -> None:
        self.children = children
        self.name = name

    def sift(self, request: Request) -> Decision:
        log = logger.bind(pipeline=self.name, event_id=request.event.id)
        for child in self.children:
            if not child.guard_allows(request):
                log.debug("sifter skipped: guard not met", sifter=child.label_text)
                continue

            res = child.sift(request)

            if child.is_accept_early and res.action is Action.ACCEPT:
                log.debug("sifter accepted event, returning early", sifter=child.label_text)
                return res
            if res.action is not Action.ACCEPT:
                log.debug("sifter rejected event", sifter=child.label_text, action=res.action.value)
                return res
        return request.accept()

    def __repr__(self) -> str:
        return f"PipelineSifter(name={self.name!r}, children={len(self.children)})"


def pipeline(*sifters: Sifter, name: str = "") -> PipelineSifter:
    """Combine the given sifters into a PipelineSifter."""
    return PipelineSifter(_assign_default_labels(sifters), name=name)


# =============================================================================
# OneOf
# =============================================================================


class OneOfSifter(Rejectable, Sifter):
    """
    Combinator accepting an input if any child accepts it.

    The first accepting child's decision is returned. Children whose guard
    doesn't hold are skipped, and accept_early has no effect here. If no
    child accepts (including when every child was skipped), the input is
    rejected with "blocked: any of sub-sifters didn't accept the event"
    unless shadow_reject(), reject_with_msg() or
    reject_with_msg_from_input() configured something else.

    Build instances with one_of() rather than directly.
    """

    def __init__(self, children: tuple[ModdedSifter, ...], name: str = "") -> None:
        self.children = children
        self.name = name
        self._reject = reject_with_msg(ONE_OF_DEFAULT_REJECT_MSG)

    def sift(self, request: Request) -> Decision:
        log = logger.bind(one_of=self.name, event_id=request.event.id)
        for child in self.children:
            if not child.guard_allows(request):
                log.debug("sifter skipped: guard not met", sifter=child.label_text)
                continue

            res = child.sift(request)
            if res.action is Action.ACCEPT:
                log.debug("sifter accepted event", sifter=child.label_text)
                return res

        log.debug("no sifter accepted event")
        return self._reject(request)

    def __repr__(self) -> str:
        return f"OneOfSifter(name={self.name!r}, children={len(self.children)})"


def one_of(*sifters: Sifter, name: str = "") -> OneOfSifter:
    """Combine the given sifters into a OneOfSifter."""
    return OneOfSifter(_assign_default_labels(sifters), name=name)


# =============================================================================
# Conditional
# =============================================================================


class ConditionalSifter(Sifter):
    """
    Applies body only when cond's outcome has the required polarity.

    With if_accepted=True (if_then) body runs when cond accepts; with
    if_accepted=False (if_not_then) body runs when cond doesn't accept.
    Otherwise the input is accepted unconditionally.
    """

    def __init__(self, cond: Sifter, body: Sifter, if_accepted: bool = True) -> None:
        self.cond = cond
        self.body = body
        self.if_accepted = if_accepted

    def sift(self, request: Request) -> Decision:
        cond_res = self.cond.sift(request)
        if (cond_res.action is Action.ACCEPT) == self.if_accepted:
            return self.body.sift(request)
        return request.accept()

    def __repr__(self) -> str:
        return f"ConditionalSifter(if_accepted={self.if_accepted})"


def if_then(cond: Sifter, body: Sifter) -> ConditionalSifter:
    """Apply body only if cond accepts the input; accept otherwise."""
    return ConditionalSifter(cond, body, if_accepted=True)


def if_not_then(cond: Sifter, body: Sifter) -> ConditionalSifter:
    """Apply body only if cond doesn't accept the input; accept otherwise."""
    return ConditionalSifter(cond, body, if_accepted=False)

