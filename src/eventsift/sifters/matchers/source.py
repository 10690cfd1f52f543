"""
Matchers on the source IP address of an event.

Events that didn't come from an end user (imported, streamed or synced
from another relay) are always accepted by these matchers.
"""

import ipaddress
from collections.abc import Callable, Iterable

import structlog

from eventsift.schema import MatchResult, Mode, Request
from eventsift.sifters.base import SifterUnit, match_result_from_bool
from eventsift.sifters.rejection import reject_with_msg_per_mode

logger = structlog.get_logger(__name__)

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address
IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


def source_ip_matcher(
    matcher: Callable[[IPAddress], bool],
    mode: Mode,
    mode_for_unknown_source: Mode,
) -> SifterUnit:
    """
    Match the source IP address of an event with the given function.

    Args:
        matcher: Predicate on the parsed client address
        mode: Whether a match means accept or reject
        mode_for_unknown_source: ALLOW accepts, DENY rejects events whose
            source address can't be parsed
    """

    def match_input(request: Request) -> MatchResult:
        if not request.source_type.is_end_user:
            return MatchResult.ALWAYS_ACCEPT
        try:
            addr = ipaddress.ip_address(request.source_info)
        except ValueError:
            logger.warning(
                "failed to parse source IP address",
                source_info=request.source_info,
                event_id=request.event.id,
            )
            if mode_for_unknown_source is Mode.ALLOW:
                return MatchResult.ALWAYS_ACCEPT
            return MatchResult.ALWAYS_REJECT
        return match_result_from_bool(matcher(addr))

    return SifterUnit(
        match_input,
        mode,
        reject_with_msg_per_mode(
            mode,
            "blocked: source IP is not in the whitelist",
            "blocked: source IP is in the blacklist",
        ),
        name="source_ip_matcher",
    )


def source_ip_prefix_list(
    networks: Iterable[IPNetwork],
    mode: Mode,
    mode_for_unknown_source: Mode,
) -> SifterUnit:
    """
    Check the source IP address of an event against a list of networks (CIDRs).

    Use parse_ip_networks() to build the list from strings.
    """
    # broader ranges first
    ordered = sorted(networks, key=lambda n: n.prefixlen)

    def in_networks(addr: IPAddress) -> bool:
        return any(addr in n for n in ordered)

    return source_ip_matcher(in_networks, mode, mode_for_unknown_source)


def parse_ip_networks(values: Iterable[str]) -> list[IPNetwork]:
    """
    Parse IP addresses and CIDRs into networks.

    A bare address becomes a network containing only that address
    (192.168.1.1 -> 192.168.1.1/32, 2001:db8::1 -> 2001:db8::1/128).
    Host bits in a prefix are masked off (192.168.1.5/24 -> 192.168.1.0/24).

    Raises:
        ValueError: If any value is neither an address nor a network
    """
    networks: list[IPNetwork] = []
    for value in values:
        try:
            if "/" in value:
                networks.append(ipaddress.ip_network(value, strict=False))
            else:
                networks.append(ipaddress.ip_network(ipaddress.ip_address(value)))
        except ValueError as e:
            msg = f"failed to parse IP address or prefix {value!r}: {e}"
            raise ValueError(msg) from e
    return networks
