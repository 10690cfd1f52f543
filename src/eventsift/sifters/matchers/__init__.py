"""
Built-in leaf matchers.

Each matcher is a SifterUnit: a predicate on one part of the request plus
a Mode (ALLOW = whitelist, DENY = blacklist) and a default rejection
message that can be replaced fluently.
"""

from eventsift.sifters.matchers.content import (
    content_has_all_words,
    content_has_any_word,
    content_matcher,
    content_matches_all_regexps,
    content_matches_any_regexp,
)
from eventsift.sifters.matchers.event import (
    RelativeTimeRange,
    author_list,
    author_matcher,
    created_at_range,
    kind_list,
    kind_matcher,
    kind_matcher_fallible,
    kinds_all_ephemeral,
    kinds_all_non_param_replaceable,
    kinds_all_param_replaceable,
    kinds_all_regular,
    kinds_all_replaceable,
    matches_filters,
    tags_matcher,
)
from eventsift.sifters.matchers.pow import leading_zero_bits, pow_min_difficulty
from eventsift.sifters.matchers.source import (
    parse_ip_networks,
    source_ip_matcher,
    source_ip_prefix_list,
)

__all__ = [
    "RelativeTimeRange",
    "author_list",
    "author_matcher",
    "content_has_all_words",
    "content_has_any_word",
    "content_matcher",
    "content_matches_all_regexps",
    "content_matches_any_regexp",
    "created_at_range",
    "kind_list",
    "kind_matcher",
    "kind_matcher_fallible",
    "kinds_all_ephemeral",
    "kinds_all_non_param_replaceable",
    "kinds_all_param_replaceable",
    "kinds_all_regular",
    "kinds_all_replaceable",
    "leading_zero_bits",
    "matches_filters",
    "parse_ip_networks",
    "pow_min_difficulty",
    "source_ip_matcher",
    "source_ip_prefix_list",
    "tags_matcher",
]
