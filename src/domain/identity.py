"""Job-scoped mapping from raw log identifiers to canonical player ids."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from domain.events import PlayerRef

logger = logging.getLogger(__name__)

_STEAM_ID = re.compile(r"^\[U:\d+:(?P<account>\d+)\]$")
_ACCOUNT_ID = re.compile(r"^\d+$")
NICKNAME_PREFIX_LENGTH = 3


class ResolutionMethod(str, Enum):
    EXACT = "exact"
    NUMERIC_SUFFIX = "numeric_suffix"
    ALIAS = "alias"
    NICKNAME_PREFIX = "nickname_prefix"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class KnownPlayer:
    canonical_id: str
    nickname: str | None = None
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedIdentity:
    raw_id: str
    player_id: str
    method: ResolutionMethod

    @property
    def is_resolved(self) -> bool:
        return self.method is not ResolutionMethod.UNRESOLVED


def account_number(raw_id: str) -> str | None:
    """Numeric account part of ``[U:1:N]`` or a bare ``N``."""
    match = _STEAM_ID.match(raw_id)
    if match is not None:
        return match.group("account")
    if _ACCOUNT_ID.match(raw_id):
        return raw_id
    return None


class PlayerIdentityResolver:
    """Resolves raw ids seen in one ingestion job.

    Create one per job and pass it explicitly; answers are memoised for the
    lifetime of the instance, so the same raw id always resolves the same way.
    """

    def __init__(self, known_players: Iterable[KnownPlayer] = ()) -> None:
        self._nicknames: dict[str, str | None] = {}
        self._accounts: dict[str, str] = {}
        self._aliases: dict[str, str] = {}
        self._memo: dict[str, ResolvedIdentity] = {}
        for known in known_players:
            self.register(known.canonical_id, nickname=known.nickname, aliases=known.aliases)

    def register(
        self,
        canonical_id: str,
        *,
        nickname: str | None = None,
        aliases: Iterable[str] = (),
    ) -> None:
        """Add a canonical id and the alias forms it may appear under."""
        if canonical_id not in self._nicknames or nickname is not None:
            self._nicknames[canonical_id] = nickname

        account = account_number(canonical_id)
        if account is not None:
            self._accounts.setdefault(account, canonical_id)

        forms = list(aliases)
        if nickname is not None:
            forms.append(nickname)
        for alias in forms:
            key = alias.strip().lower()
            if not key:
                continue
            existing = self._aliases.setdefault(key, canonical_id)
            if existing != canonical_id:
                logger.debug("Alias %r already maps to %s, ignoring %s", alias, existing, canonical_id)

    def observe(self, player: PlayerRef) -> str:
        """Register a player seen on a log line and return its canonical id."""
        canonical_id = player.raw_id
        self.register(canonical_id, nickname=player.name)
        return canonical_id

    def observe_all(self, players: Iterable[PlayerRef]) -> None:
        """Register players before any resolution so cached answers see the full table."""
        for player in players:
            self.observe(player)

    def nickname(self, player_id: str) -> str | None:
        return self._nicknames.get(player_id)

    def resolve(self, raw_id: str) -> ResolvedIdentity:
        cached = self._memo.get(raw_id)
        if cached is not None:
            return cached

        resolved = self._resolve_uncached(raw_id)
        self._memo[raw_id] = resolved
        return resolved

    def _resolve_uncached(self, raw_id: str) -> ResolvedIdentity:
        if raw_id in self._nicknames:
            return ResolvedIdentity(raw_id, raw_id, ResolutionMethod.EXACT)

        account = account_number(raw_id)
        if account is not None and account in self._accounts:
            return ResolvedIdentity(raw_id, self._accounts[account], ResolutionMethod.NUMERIC_SUFFIX)

        key = raw_id.strip().lower()
        if key in self._aliases:
            return ResolvedIdentity(raw_id, self._aliases[key], ResolutionMethod.ALIAS)

        if account is None and len(key) >= NICKNAME_PREFIX_LENGTH:
            prefix = key[:NICKNAME_PREFIX_LENGTH]
            candidates = {
                canonical_id
                for alias, canonical_id in self._aliases.items()
                if alias[:NICKNAME_PREFIX_LENGTH] == prefix
            }
            if len(candidates) == 1:
                player_id = candidates.pop()
                logger.warning(
                    "Resolved %r to %s by nickname prefix %r; add an alias to make this explicit",
                    raw_id,
                    player_id,
                    prefix,
                )
                return ResolvedIdentity(raw_id, player_id, ResolutionMethod.NICKNAME_PREFIX)

        logger.debug("Could not resolve %r, keeping raw id", raw_id)
        return ResolvedIdentity(raw_id, raw_id, ResolutionMethod.UNRESOLVED)


__all__ = [
    "KnownPlayer",
    "PlayerIdentityResolver",
    "ResolutionMethod",
    "ResolvedIdentity",
    "account_number",
]
