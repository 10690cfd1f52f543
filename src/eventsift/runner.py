"""
Host loop of an event-sifter plugin.

The relay writes one JSON request per line to the plugin's stdin and
expects exactly one JSON decision per line on stdout, in the same order.

The runner is the only place where failures become decisions:
    - an unparsable line is answered with a decision carrying an empty ID,
      which the relay treats as a rejection
    - a failure raised by the sifter tree is logged and answered according
      to RunnerSettings.on_error (reject with an error message by default)
"""

import sys
from typing import TextIO

import structlog
from pydantic import ValidationError

from eventsift.config import OnError, RunnerSettings
from eventsift.errors import EventSiftError, InputError, UnsupportedInputTypeError
from eventsift.logging import configure_logging
from eventsift.schema import Decision, Request, load_request_from_string
from eventsift.sifters.base import Sifter, accept_all

logger = structlog.get_logger(__name__)


class Runner:
    """
    Runs a sifter over a stream of requests.

    Usage:
        Runner(policy).run()

    Attributes:
        sifter: Root of the sifter tree (accepts everything if None)
        settings: Runner settings
    """

    def __init__(self, sifter: Sifter | None = None, settings: RunnerSettings | None = None) -> None:
        self.sifter = sifter or accept_all
        self.settings = settings or RunnerSettings()

    def process(self, request: Request) -> Decision:
        """
        Evaluate one request with the sifter tree.

        Raises:
            UnsupportedInputTypeError: If the input type isn't "new"
            EventSiftError: Whatever the sifter tree raises
        """
        if request.type != "new":
            raise UnsupportedInputTypeError(input_type=request.type)
        return self.sifter.sift(request)

    def decide(self, request: Request) -> Decision:
        """Evaluate one request, turning any failure into the configured decision."""
        try:
            return self.process(request)
        except EventSiftError as e:
            logger.error("sifter failed", event_id=request.event.id, error=str(e), code=e.code)
        except Exception:
            logger.exception("sifter raised unexpected exception", event_id=request.event.id)
        return self._on_error(request)

    def _on_error(self, request: Request) -> Decision:
        on_error = self.settings.on_error
        if on_error is OnError.ACCEPT:
            return request.accept()
        if on_error is OnError.SHADOW_REJECT:
            return request.shadow_reject()
        return request.reject(self.settings.error_msg)

    def handle_line(self, line: str) -> str:
        """Turn one input line into one output line (without newline)."""
        try:
            request = load_request_from_string(line)
        except ValidationError as e:
            err = InputError(underlying_error=str(e))
            logger.error("failed to parse input", error=err.underlying_error, code=err.code)
            # the relay rejects decisions it can't match to an event
            return Decision.reject("", self.settings.error_msg).to_wire()
        return self.decide(request).to_wire()

    def run(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
        """
        Process lines until stdin is exhausted.

        If structlog hasn't been configured yet, logging is configured with
        the defaults so that no log line ends up on stdout.

        Returns:
            Number of lines processed
        """
        if not structlog.is_configured():
            configure_logging()

        stdin = stdin or sys.stdin
        stdout = stdout or sys.stdout

        count = 0
        for line in stdin:
            line = line.strip()
            if not line:
                continue
            stdout.write(self.handle_line(line) + "\n")
            stdout.flush()
            count += 1
        return count
