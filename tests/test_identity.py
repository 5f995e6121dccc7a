"""Tests for job-scoped player identity resolution."""

from __future__ import annotations

import logging

import pytest

from domain.events import PlayerRef
from domain.identity import (
    KnownPlayer,
    PlayerIdentityResolver,
    ResolutionMethod,
    account_number,
)


def _resolver() -> PlayerIdentityResolver:
    resolver = PlayerIdentityResolver(
        known_players=[KnownPlayer(canonical_id="[U:1:500]", nickname="Zywoo", aliases=("zyw00",))]
    )
    resolver.observe(PlayerRef(name="alice", slot=2, steam_id="[U:1:100]", team="CT"))
    resolver.observe(PlayerRef(name="bobby", slot=3, steam_id="[U:1:200]", team="TERRORIST"))
    return resolver


@pytest.mark.parametrize(
    ("raw_id", "expected"),
    [("[U:1:42]", "42"), ("42", "42"), ("BOT:Albert", None), ("alice", None)],
)
def test_account_number(raw_id: str, expected: str | None) -> None:
    assert account_number(raw_id) == expected


def test_resolution_order() -> None:
    resolver = _resolver()

    assert resolver.resolve("[U:1:100]").method is ResolutionMethod.EXACT
    numeric = resolver.resolve("200")
    assert numeric.method is ResolutionMethod.NUMERIC_SUFFIX
    assert numeric.player_id == "[U:1:200]"
    alias = resolver.resolve("ZYW00")
    assert alias.method is ResolutionMethod.ALIAS
    assert alias.player_id == "[U:1:500]"
    assert resolver.resolve("Alice").player_id == "[U:1:100]"


def test_nickname_prefix_fallback_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    resolver = _resolver()

    with caplog.at_level(logging.WARNING, logger="domain.identity"):
        resolved = resolver.resolve("bob")

    assert resolved.method is ResolutionMethod.NICKNAME_PREFIX
    assert resolved.player_id == "[U:1:200]"
    assert "nickname prefix" in caplog.text


def test_ambiguous_prefix_stays_unresolved() -> None:
    resolver = _resolver()
    resolver.observe(PlayerRef(name="alina", slot=5, steam_id="[U:1:101]", team="CT"))

    resolved = resolver.resolve("ali_smurf")

    assert resolved.method is ResolutionMethod.UNRESOLVED
    assert resolved.player_id == "ali_smurf"
    assert resolved.is_resolved is False


def test_unknown_ids_keep_the_raw_label() -> None:
    resolved = _resolver().resolve("999")

    assert resolved.method is ResolutionMethod.UNRESOLVED
    assert resolved.player_id == "999"


def test_repeated_resolution_is_stable() -> None:
    resolver = _resolver()
    first = resolver.resolve("777")
    resolver.observe(PlayerRef(name="late", slot=7, steam_id="[U:1:777]", team="CT"))

    assert resolver.resolve("777") == first


def test_resolvers_do_not_share_state() -> None:
    first = _resolver()
    first.observe(PlayerRef(name="carol", slot=4, steam_id="[U:1:300]", team="CT"))

    second = PlayerIdentityResolver()

    assert first.resolve("300").player_id == "[U:1:300]"
    assert second.resolve("300").method is ResolutionMethod.UNRESOLVED
    assert second.nickname("[U:1:300]") is None
    assert first.nickname("[U:1:300]") == "carol"


def test_account_numbers_never_match_by_nickname_prefix() -> None:
    resolver = PlayerIdentityResolver()
    resolver.observe(PlayerRef(name="123abc", slot=2, steam_id="[U:1:100]", team="CT"))

    assert resolver.resolve("1234567").method is ResolutionMethod.UNRESOLVED
    assert resolver.resolve("123xyz").method is ResolutionMethod.NICKNAME_PREFIX


def test_observe_all_registers_before_anything_is_cached() -> None:
    resolver = PlayerIdentityResolver()
    resolver.observe_all(
        [
            PlayerRef(name="alice", slot=2, steam_id="[U:1:100]", team="CT"),
            PlayerRef(name="carol", slot=4, steam_id="[U:1:300]", team="CT"),
        ]
    )

    resolved = resolver.resolve("300")

    assert resolved.method is ResolutionMethod.NUMERIC_SUFFIX
    assert resolved.player_id == "[U:1:300]"
    assert resolver.nickname("[U:1:300]") == "carol"
