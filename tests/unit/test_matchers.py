"""
Unit tests for the built-in leaf matchers.

Tests cover:
- Author, kind and tag matchers in both modes
- Kind category predicates
- Content word and regexp matchers
- Timestamp range with an injected clock
- Source IP matchers and unknown sources
- Proof-of-work difficulty
"""

import ipaddress
import re
from datetime import timedelta

import pytest

from conftest import make_request
from eventsift.clock import FakeClock
from eventsift.errors import MatchError
from eventsift.schema import Action, Filter, Mode, SourceType
from eventsift.sifters.matchers import (
    RelativeTimeRange,
    author_list,
    author_matcher,
    content_has_all_words,
    content_has_any_word,
    content_matcher,
    content_matches_all_regexps,
    content_matches_any_regexp,
    created_at_range,
    kind_list,
    kind_matcher,
    kind_matcher_fallible,
    kinds_all_ephemeral,
    kinds_all_non_param_replaceable,
    kinds_all_param_replaceable,
    kinds_all_regular,
    kinds_all_replaceable,
    leading_zero_bits,
    matches_filters,
    parse_ip_networks,
    pow_min_difficulty,
    source_ip_matcher,
    source_ip_prefix_list,
    tags_matcher,
)


class TestFilters:
    """Tests for matches_filters."""

    def test_whitelist(self) -> None:
        """Events matching any of the filters are accepted."""
        sifter = matches_filters([{"kinds": [1]}, {"authors": ["alice"]}], Mode.ALLOW)
        assert sifter.sift(make_request(kind=1)).accepted
        assert sifter.sift(make_request(kind=7, pubkey="alice")).accepted
        decision = sifter.sift(make_request(kind=7))
        assert decision.action is Action.REJECT
        assert decision.msg == "blocked: event must match filters to be accepted"

    def test_blacklist(self) -> None:
        """Events matching a filter are rejected in DENY mode."""
        sifter = matches_filters([Filter(kinds=[4])], Mode.DENY)
        assert sifter.sift(make_request(kind=1)).accepted
        assert sifter.sift(make_request(kind=4)).msg == "blocked: event is denied by filters"

    def test_conditions_are_combined(self) -> None:
        """All conditions of one filter must hold."""
        sifter = matches_filters(
            [{"kinds": [1], "#t": ["nostr"], "since": 100, "until": 200}], Mode.ALLOW
        )
        tags = [["t", "nostr"]]
        assert sifter.sift(make_request(tags=tags, created_at=150)).accepted
        assert not sifter.sift(make_request(kind=7, tags=tags, created_at=150)).accepted
        assert not sifter.sift(make_request(tags=[["t", "other"]], created_at=150)).accepted
        assert not sifter.sift(make_request(tags=tags, created_at=99)).accepted
        assert not sifter.sift(make_request(tags=tags, created_at=201)).accepted

    def test_ids(self) -> None:
        """ids restricts the event ID."""
        sifter = matches_filters([{"ids": ["event-1"]}], Mode.ALLOW)
        assert sifter.sift(make_request(event_id="event-1")).accepted
        assert not sifter.sift(make_request(event_id="event-2")).accepted

    def test_empty_filter_list_matches_nothing(self) -> None:
        """With no filters, nothing matches."""
        assert not matches_filters([], Mode.ALLOW).sift(make_request()).accepted
        assert matches_filters([], Mode.DENY).sift(make_request()).accepted


class TestAuthor:
    """Tests for author matchers."""

    def test_whitelist(self) -> None:
        """ALLOW accepts listed authors and rejects others."""
        sifter = author_list(["alice"], Mode.ALLOW)
        assert sifter.sift(make_request(pubkey="alice")).accepted
        decision = sifter.sift(make_request(pubkey="mallory"))
        assert decision.action is Action.REJECT
        assert decision.msg == "blocked: event author is not in the whitelist"

    def test_blacklist(self) -> None:
        """DENY rejects listed authors and accepts others."""
        sifter = author_list(["mallory"], Mode.DENY)
        assert sifter.sift(make_request(pubkey="alice")).accepted
        assert sifter.sift(make_request(pubkey="mallory")).msg == (
            "blocked: event author is in the blacklist"
        )

    def test_author_matcher(self) -> None:
        """author_matcher applies an arbitrary predicate."""
        sifter = author_matcher(lambda pk: pk.startswith("npub"), Mode.ALLOW)
        assert sifter.sift(make_request(pubkey="npub1")).accepted
        assert not sifter.sift(make_request(pubkey="x")).accepted

    def test_author_matcher_failure(self) -> None:
        """A raising predicate becomes MatchError."""
        sifter = author_matcher(lambda pk: {}[pk], Mode.ALLOW)
        with pytest.raises(MatchError) as exc_info:
            sifter.sift(make_request(event_id="e1"))
        assert exc_info.value.sifter == "author_matcher"
        assert exc_info.value.event_id == "e1"


class TestKind:
    """Tests for kind matchers and predicates."""

    @pytest.mark.parametrize(
        ("kind", "expected"),
        [(0, True), (3, True), (41, True), (10000, True), (19999, True), (1, False), (20000, False)],
    )
    def test_non_param_replaceable(self, kind: int, expected: bool) -> None:
        """Kind 0, 3, 41 and 10000-19999 are non-parameterized replaceable."""
        assert kinds_all_non_param_replaceable(kind) is expected

    @pytest.mark.parametrize(
        ("kind", "expected"), [(29999, False), (30000, True), (39999, True), (40000, False)]
    )
    def test_param_replaceable(self, kind: int, expected: bool) -> None:
        """30000-39999 are parameterized replaceable."""
        assert kinds_all_param_replaceable(kind) is expected

    @pytest.mark.parametrize(
        ("kind", "expected"), [(19999, False), (20000, True), (29999, True), (30000, False)]
    )
    def test_ephemeral(self, kind: int, expected: bool) -> None:
        """20000-29999 are ephemeral."""
        assert kinds_all_ephemeral(kind) is expected

    @pytest.mark.parametrize(
        ("kind", "expected"),
        [(1, True), (7, True), (40000, True), (0, False), (20001, False), (30023, False)],
    )
    def test_regular(self, kind: int, expected: bool) -> None:
        """Regular events are neither replaceable nor ephemeral."""
        assert kinds_all_regular(kind) is expected

    def test_replaceable(self) -> None:
        """Replaceable covers both replaceable categories."""
        assert kinds_all_replaceable(0)
        assert kinds_all_replaceable(30023)
        assert not kinds_all_replaceable(1)

    def test_kind_list(self) -> None:
        """kind_list whitelists kinds."""
        sifter = kind_list([1, 7], Mode.ALLOW)
        assert sifter.sift(make_request(kind=7)).accepted
        assert sifter.sift(make_request(kind=4)).msg == (
            "blocked: the kind of the event is not in the whitelist"
        )

    def test_kind_list_deny(self) -> None:
        """kind_list blacklists kinds."""
        sifter = kind_list([4], Mode.DENY)
        assert sifter.sift(make_request(kind=4)).msg == (
            "blocked: the kind of the event is in the blacklist"
        )

    def test_kind_matcher(self) -> None:
        """kind_matcher works with category predicates."""
        sifter = kind_matcher(kinds_all_ephemeral, Mode.DENY)
        assert sifter.sift(make_request(kind=1)).accepted
        assert not sifter.sift(make_request(kind=20001)).accepted

    def test_kind_matcher_fallible(self) -> None:
        """A raising kind predicate becomes MatchError."""

        def picky(kind: int) -> bool:
            if kind > 100:
                raise ValueError("unsupported kind")
            return True

        sifter = kind_matcher_fallible(picky, Mode.ALLOW)
        assert sifter.sift(make_request(kind=1)).accepted
        with pytest.raises(MatchError, match="unsupported kind"):
            sifter.sift(make_request(kind=1000))


class TestTags:
    """Tests for tags_matcher."""

    def test_tags_matcher(self) -> None:
        """tags_matcher sees the event's tag list."""
        has_hashtag = tags_matcher(lambda tags: any(t[0] == "t" for t in tags), Mode.DENY)
        assert has_hashtag.sift(make_request(tags=[["p", "x"]])).accepted
        decision = has_hashtag.sift(make_request(tags=[["t", "spam"]]))
        assert decision.msg == "blocked: event tags match forbidden patterns"


class TestContent:
    """Tests for content matchers."""

    def test_content_matcher(self) -> None:
        """content_matcher applies an arbitrary predicate."""
        short = content_matcher(lambda c: len(c) <= 5, Mode.ALLOW)
        assert short.sift(make_request(content="hi")).accepted
        assert short.sift(make_request(content="too long")).msg == (
            "blocked: content must obey some rules to be accepted"
        )

    def test_any_word(self) -> None:
        """Any listed word matches."""
        sifter = content_has_any_word(["spam", "scam"], Mode.DENY)
        assert sifter.sift(make_request(content="hello world")).accepted
        assert sifter.sift(make_request(content="buy scam coins")).msg == (
            "blocked: content has one of forbidden words"
        )

    def test_all_words(self) -> None:
        """All listed words must appear."""
        sifter = content_has_all_words(["nostr", "relay"], Mode.ALLOW)
        assert sifter.sift(make_request(content="my nostr relay")).accepted
        assert not sifter.sift(make_request(content="my nostr client")).accepted

    def test_words_case_sensitive(self) -> None:
        """Word matching is case-sensitive."""
        sifter = content_has_any_word(["Spam"], Mode.DENY)
        assert sifter.sift(make_request(content="spam")).accepted

    def test_any_regexp(self) -> None:
        """Patterns are searched anywhere in the content."""
        sifter = content_matches_any_regexp([re.compile(r"https?://"), re.compile(r"\d{6}")], Mode.DENY)
        assert sifter.sift(make_request(content="plain note")).accepted
        assert sifter.sift(make_request(content="see http://x")).msg == (
            "blocked: content matches one of forbidden patterns"
        )

    def test_all_regexps(self) -> None:
        """Every pattern must match."""
        sifter = content_matches_all_regexps([re.compile("^gm"), re.compile("!$")], Mode.ALLOW)
        assert sifter.sift(make_request(content="gm nostr!")).accepted
        assert sifter.sift(make_request(content="gm nostr")).msg == (
            "blocked: content must match all of key-patterns to be accepted"
        )


class TestCreatedAtRange:
    """Tests for created_at_range."""

    def test_range(self, clock: FakeClock) -> None:
        """Timestamps within the range are accepted."""
        now = int(clock.timestamp())
        time_range = RelativeTimeRange(
            max_past_delta=timedelta(minutes=10),
            max_future_delta=timedelta(minutes=1),
        )
        sifter = created_at_range(time_range, Mode.ALLOW, clock=clock)

        assert sifter.sift(make_request(created_at=now)).accepted
        assert sifter.sift(make_request(created_at=now - 600)).accepted
        assert sifter.sift(make_request(created_at=now + 60)).accepted

        decision = sifter.sift(make_request(created_at=now - 601))
        assert decision.action is Action.REJECT
        assert decision.msg.startswith("invalid: event timestamp is out of the range")
        assert not sifter.sift(make_request(created_at=now + 61)).accepted

    def test_follows_clock(self, clock: FakeClock) -> None:
        """The range is relative to the injected clock."""
        created_at = int(clock.timestamp())
        sifter = created_at_range(
            RelativeTimeRange(max_past_delta=timedelta(seconds=30)), Mode.ALLOW, clock=clock
        )
        assert sifter.sift(make_request(created_at=created_at)).accepted
        clock.advance(31)
        assert not sifter.sift(make_request(created_at=created_at)).accepted

    def test_unbounded_sides(self, clock: FakeClock) -> None:
        """A zero delta leaves that side open."""
        now = int(clock.timestamp())
        sifter = created_at_range(
            RelativeTimeRange(max_future_delta=timedelta(seconds=5)), Mode.ALLOW, clock=clock
        )
        assert sifter.sift(make_request(created_at=0)).accepted
        assert not sifter.sift(make_request(created_at=now + 10)).accepted

    def test_deny_mode(self, clock: FakeClock) -> None:
        """DENY rejects timestamps inside the range."""
        now = int(clock.timestamp())
        sifter = created_at_range(
            RelativeTimeRange(max_past_delta=timedelta(hours=1)), Mode.DENY, clock=clock
        )
        assert sifter.sift(make_request(created_at=now)).msg.startswith(
            "blocked: event timestamp must be out of the range"
        )

    def test_str(self) -> None:
        """Ranges render readably."""
        assert str(RelativeTimeRange()) == "[-∞, +∞]"
        assert str(RelativeTimeRange(max_past_delta=timedelta(minutes=5))) == "[0:05:00 ago, +∞]"


class TestSourceIP:
    """Tests for source IP matchers."""

    def test_prefix_list(self) -> None:
        """Addresses inside any listed network match."""
        networks = parse_ip_networks(["10.0.0.0/8", "192.168.1.1", "2001:db8::/32"])
        sifter = source_ip_prefix_list(networks, Mode.DENY, Mode.ALLOW)
        assert not sifter.sift(make_request(source_info="10.1.2.3")).accepted
        assert not sifter.sift(make_request(source_info="192.168.1.1")).accepted
        assert sifter.sift(make_request(source_info="192.168.1.2")).accepted
        decision = sifter.sift(
            make_request(source_type=SourceType.IP6, source_info="2001:db8::42")
        )
        assert decision.msg == "blocked: source IP is in the blacklist"

    def test_whitelist_message(self) -> None:
        """ALLOW mode uses the whitelist message."""
        sifter = source_ip_prefix_list(parse_ip_networks(["127.0.0.1"]), Mode.ALLOW, Mode.ALLOW)
        assert sifter.sift(make_request(source_info="8.8.8.8")).msg == (
            "blocked: source IP is not in the whitelist"
        )

    @pytest.mark.parametrize("source_type", [SourceType.IMPORT, SourceType.STREAM, SourceType.SYNC])
    def test_non_end_user_always_accepted(self, source_type: SourceType) -> None:
        """Events not sent by end users are accepted regardless of mode."""
        sifter = source_ip_matcher(lambda _addr: True, Mode.DENY, Mode.DENY)
        request = make_request(source_type=source_type, source_info="wss://relay.example")
        assert sifter.sift(request).accepted

    def test_unknown_source_allow(self) -> None:
        """Unparsable addresses are accepted when the unknown-source mode is ALLOW."""
        sifter = source_ip_matcher(lambda _addr: True, Mode.DENY, Mode.ALLOW)
        assert sifter.sift(make_request(source_info="not-an-ip")).accepted

    def test_unknown_source_deny(self) -> None:
        """Unparsable addresses are rejected when the unknown-source mode is DENY."""
        sifter = source_ip_matcher(lambda _addr: True, Mode.ALLOW, Mode.DENY)
        assert not sifter.sift(make_request(source_info="")).accepted

    def test_matcher_gets_parsed_address(self) -> None:
        """The predicate receives an ipaddress object."""
        seen = []
        sifter = source_ip_matcher(lambda addr: seen.append(addr) or True, Mode.ALLOW, Mode.DENY)
        sifter.sift(make_request(source_info="::1", source_type=SourceType.IP6))
        assert seen == [ipaddress.ip_address("::1")]

    def test_parse_ip_networks(self) -> None:
        """Bare addresses become single-address networks."""
        assert parse_ip_networks(["192.168.1.1", "2001:db8::1"]) == [
            ipaddress.ip_network("192.168.1.1/32"),
            ipaddress.ip_network("2001:db8::1/128"),
        ]

    def test_parse_ip_networks_masks_host_bits(self) -> None:
        """Prefixes with host bits set are accepted and masked."""
        networks = parse_ip_networks(["192.168.1.5/24", "2001:db8::1/32"])
        assert networks == [
            ipaddress.ip_network("192.168.1.0/24"),
            ipaddress.ip_network("2001:db8::/32"),
        ]
        sifter = source_ip_prefix_list(networks, Mode.ALLOW, Mode.DENY)
        assert sifter.sift(make_request(source_info="192.168.1.200")).accepted
        assert not sifter.sift(make_request(source_info="192.168.2.1")).accepted

    @pytest.mark.parametrize("value", ["nope", "10.0.0.1/33", "300.0.0.0/8"])
    def test_parse_ip_networks_invalid(self, value: str) -> None:
        """Invalid addresses and prefixes raise ValueError."""
        with pytest.raises(ValueError, match="failed to parse IP address or prefix"):
            parse_ip_networks([value])


class TestPow:
    """Tests for proof-of-work matchers."""

    @pytest.mark.parametrize(
        ("event_id", "bits"),
        [
            ("", 0),
            ("f0", 0),
            ("8f", 0),
            ("7f", 1),
            ("3f", 2),
            ("1f", 3),
            ("0f", 4),
            ("002f", 10),
            ("000000000e9d97a1ab09fc381030b346cdd7a142ad57e6df0b46dc9bef6c7e2d", 36),
        ],
    )
    def test_leading_zero_bits(self, event_id: str, bits: int) -> None:
        """Leading zero bits of the hex ID are counted."""
        assert leading_zero_bits(event_id) == bits

    @pytest.mark.parametrize("event_id", ["0x", "00F", "zz"])
    def test_leading_zero_bits_invalid(self, event_id: str) -> None:
        """Non-hex and uppercase characters raise ValueError."""
        with pytest.raises(ValueError):
            leading_zero_bits(event_id)

    def test_pow_min_difficulty(self) -> None:
        """Events below the difficulty are rejected with a pow message."""
        sifter = pow_min_difficulty(8)
        assert sifter.sift(make_request(event_id="00ff")).accepted
        decision = sifter.sift(make_request(event_id="01ff"))
        assert decision.action is Action.REJECT
        assert decision.msg == "pow: difficulty is less than 8"

    def test_pow_invalid_id(self) -> None:
        """An ID that isn't hex makes the matcher fail."""
        with pytest.raises(MatchError):
            pow_min_difficulty(1).sift(make_request(event_id="not-hex"))
