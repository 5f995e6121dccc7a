"""Parse CS2 dedicated-server log lines into typed game events."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime

from domain.events import (
    AssistEvent,
    AttackEvent,
    BombAction,
    BombEvent,
    GameEvent,
    GameOverEvent,
    KillEvent,
    PlayerRef,
    RoundEndEvent,
    RoundStartEvent,
    ServerAccolade,
)

logger = logging.getLogger(__name__)

_LINE_PREFIX = re.compile(
    r"^L (?P<date>\d{2}/\d{2}/\d{4}) - (?P<time>\d{2}:\d{2}:\d{2}): (?P<body>.*)$",
    re.DOTALL,
)
_PLAYER = re.compile(
    r"^(?P<name>.+)<(?P<slot>\d+)><(?P<steam_id>\[U:\d+:\d+\]|BOT)><(?P<team>[^<>]*)>$"
)
_POSITION = r"\[-?\d+ -?\d+ -?\d+\]"

_ATTACK = re.compile(
    rf'^"(?P<attacker>[^"]+)" {_POSITION} attacked "(?P<victim>[^"]+)" {_POSITION} '
    r'with "(?P<weapon>[^"]+)" '
    r'\(damage "(?P<damage>\d+)"\) '
    r'\(damage_armor "(?P<damage_armor>\d+)"\) '
    r'\(health "(?P<health>\d+)"\) '
    r'\(armor "(?P<armor>\d+)"\) '
    r'\(hitgroup "(?P<hitgroup>[^"]+)"\)\s*$'
)
_KILL = re.compile(
    rf'^"(?P<attacker>[^"]+)" {_POSITION} killed (?:other )?"(?P<victim>[^"]+)" {_POSITION} '
    r'with "(?P<weapon>[^"]+)"(?P<modifiers>(?: \([^)]*\))*)\s*$'
)
_ASSIST = re.compile(
    r'^"(?P<assister>[^"]+)" (?P<assist_type>(?:flash-)?assisted) killing "(?P<victim>[^"]+)"\s*$'
)
_BOMB_PLANT = re.compile(
    r'^"(?P<player>[^"]+)" triggered "Planted_The_Bomb" at bombsite (?P<bombsite>[AB])\s*$'
)
_BOMB_DEFUSE_START = re.compile(
    r'^"(?P<player>[^"]+)" triggered "Begin_Bomb_Defuse_With(?:out)?_Kit"\s*$'
)
_BOMB_DEFUSED = re.compile(r'^Team "CT" triggered "SFUI_Notice_Bomb_Defused".*$')
_BOMB_EXPLODED = re.compile(r'^Team "TERRORIST" triggered "SFUI_Notice_Target_Bombed".*$')
_GAME_OVER = re.compile(
    r"^Game Over: (?P<mode>\w+) mg_active (?P<map>\S+) "
    r"score (?P<team1_score>\d+):(?P<team2_score>\d+) after (?P<duration>\d+) min\s*$"
)
_ACCOLADE = re.compile(
    r"^ACCOLADE, FINAL: \{(?P<type>[^}]+)\}[,\s]+"
    r"(?P<name>[^<]+)<(?P<slot>\d+)>[,\s]+"
    r"VALUE: (?P<value>\d+(?:\.\d+)?)[,\s]+"
    r"POS: (?P<position>\d+)[,\s]+"
    r"SCORE: (?P<score>\d+(?:\.\d+)?)\s*$"
)
_SCOREBOARD_PLAYER = re.compile(r'"player_\d+"\s*:\s*"\s*(?P<account_id>\d+)\s*,')
_ISO_EXTRA_FRACTION = re.compile(r"(\.\d{6})\d+")

_ROUND_START_MARKER = 'World triggered "Round_Start"'
_ROUND_END_MARKER = 'World triggered "Round_End"'
_BOT_ACCOUNT_ID = "0"


@dataclass
class ParseStats:
    """Per-pass line accounting; malformed and unrecognised lines are never fatal."""

    total_lines: int = 0
    events: int = 0
    malformed_lines: int = 0
    unrecognized_lines: int = 0
    skipped_bot_events: int = 0

    @property
    def skipped_lines(self) -> int:
        return self.malformed_lines + self.unrecognized_lines


@dataclass(frozen=True)
class _LogRecord:
    timestamp: datetime
    content: str


@dataclass
class _ParseState:
    bomb_planter: PlayerRef | None = None
    bombsite: str | None = None
    bomb_defuser: PlayerRef | None = None
    accolades: list[ServerAccolade] = field(default_factory=list)
    pending_round_end: datetime | None = None
    in_scoreboard: bool = False
    round_participants: list[str] = field(default_factory=list)

    def reset_round(self) -> None:
        self.bomb_planter = None
        self.bombsite = None
        self.bomb_defuser = None
        self.accolades.clear()

    def flush_round_end(self) -> RoundEndEvent:
        if self.pending_round_end is None:
            raise RuntimeError("no pending Round_End to flush")
        event = RoundEndEvent(
            timestamp=self.pending_round_end,
            participant_ids=tuple(self.round_participants),
        )
        self.pending_round_end = None
        self.in_scoreboard = False
        self.round_participants = []
        return event


class EventStream:
    """Lazy, restartable event sequence over one log.

    Each iteration starts from the first line again and replaces ``stats``.
    Pass a sequence (not a one-shot iterator) to iterate more than once.
    """

    def __init__(self, parser: LogParser, lines: Iterable[str]) -> None:
        self._parser = parser
        self._lines = lines
        self.stats = ParseStats()

    def __iter__(self) -> Iterator[GameEvent]:
        self.stats = ParseStats()
        return self._parser._iter_events(self._lines, self.stats)


class LogParser:
    """Turns raw server log lines into typed events. Use one parser per job."""

    def parse(self, raw_lines: Iterable[str]) -> EventStream:
        return EventStream(self, raw_lines)

    def _iter_events(self, lines: Iterable[str], stats: ParseStats) -> Iterator[GameEvent]:
        state = _ParseState()
        for raw_line in lines:
            stats.total_lines += 1
            record = self._decode(raw_line)
            if record is None:
                stats.malformed_lines += 1
                continue

            content = record.content
            if state.pending_round_end is not None:
                if state.in_scoreboard:
                    if "JSON_END" in content:
                        stats.events += 1
                        yield state.flush_round_end()
                        continue
                    if not _ends_round_payload(content):
                        participant = _SCOREBOARD_PLAYER.search(content)
                        if participant is not None:
                            account_id = participant.group("account_id")
                            if account_id != _BOT_ACCOUNT_ID:
                                state.round_participants.append(account_id)
                        continue
                elif "JSON_BEGIN" in content:
                    state.in_scoreboard = True
                    continue

                if _ends_round_payload(content):
                    # No scoreboard after the final round; emit what we have.
                    stats.events += 1
                    yield state.flush_round_end()

            event = self._parse_content(record, state)
            if event is _CONSUMED:
                continue
            if event is None:
                stats.unrecognized_lines += 1
                logger.debug("Skipping unrecognised log line: %s", content)
                continue
            if _is_bot_only(event):
                stats.skipped_bot_events += 1
                continue

            stats.events += 1
            yield event

        if state.pending_round_end is not None:
            stats.events += 1
            yield state.flush_round_end()

        logger.debug(
            "Parsed log total_lines=%s events=%s malformed=%s unrecognized=%s bot_only=%s",
            stats.total_lines,
            stats.events,
            stats.malformed_lines,
            stats.unrecognized_lines,
            stats.skipped_bot_events,
        )

    def _decode(self, raw_line: str) -> _LogRecord | None:
        line = raw_line.strip()
        if not line:
            return None

        json_time: str | None = None
        if line.startswith("{"):
            try:
                payload = json.loads(line)
            except json.JSONDecodeError:
                return None
            if not isinstance(payload, dict) or not isinstance(payload.get("log"), str):
                return None
            time_value = payload.get("time")
            json_time = time_value if isinstance(time_value, str) else None
            content = payload["log"].strip()
        else:
            content = line

        prefix = _LINE_PREFIX.match(content)
        if prefix is not None:
            content = prefix.group("body").strip()

        timestamp = None
        if json_time is not None:
            timestamp = _parse_iso_timestamp(json_time)
        if timestamp is None and prefix is not None:
            timestamp = _parse_prefix_timestamp(prefix.group("date"), prefix.group("time"))
        if timestamp is None:
            return None
        return _LogRecord(timestamp=timestamp, content=content)

    def _parse_content(self, record: _LogRecord, state: _ParseState) -> GameEvent | object | None:
        content = record.content
        timestamp = record.timestamp

        if _ROUND_START_MARKER in content:
            state.reset_round()
            return RoundStartEvent(timestamp=timestamp)

        if _ROUND_END_MARKER in content:
            state.pending_round_end = timestamp
            state.in_scoreboard = False
            state.round_participants = []
            return _CONSUMED

        match = _GAME_OVER.match(content)
        if match is not None:
            accolades = tuple(state.accolades)
            state.accolades.clear()
            return GameOverEvent(
                timestamp=timestamp,
                mode=match.group("mode"),
                map_name=match.group("map"),
                team1_score=int(match.group("team1_score")),
                team2_score=int(match.group("team2_score")),
                duration_minutes=int(match.group("duration")),
                accolades=accolades,
            )

        if content.startswith("ACCOLADE"):
            match = _ACCOLADE.match(content)
            if match is None:
                return None
            state.accolades.append(
                ServerAccolade(
                    accolade_type=match.group("type"),
                    player_name=match.group("name").strip(),
                    slot=int(match.group("slot")),
                    value=float(match.group("value")),
                    position=int(match.group("position")),
                    score=float(match.group("score")),
                )
            )
            return _CONSUMED

        # Attack lines are checked before kills; they are the more specific shape.
        match = _ATTACK.match(content)
        if match is not None:
            attacker = _parse_player(match.group("attacker"))
            victim = _parse_player(match.group("victim"))
            if attacker is None or victim is None:
                return None
            return AttackEvent(
                timestamp=timestamp,
                attacker=attacker,
                victim=victim,
                weapon=match.group("weapon"),
                reported_damage=int(match.group("damage")),
                armor_damage=int(match.group("damage_armor")),
                health_remaining=int(match.group("health")),
                hitgroup=match.group("hitgroup"),
            )

        match = _KILL.match(content)
        if match is not None:
            attacker = _parse_player(match.group("attacker"))
            victim = _parse_player(match.group("victim"))
            if attacker is None or victim is None:
                return None
            return KillEvent(
                timestamp=timestamp,
                attacker=attacker,
                victim=victim,
                weapon=match.group("weapon"),
                is_headshot="headshot" in (match.group("modifiers") or ""),
            )

        match = _ASSIST.match(content)
        if match is not None:
            assister = _parse_player(match.group("assister"))
            victim = _parse_player(match.group("victim"))
            if assister is None or victim is None:
                return None
            return AssistEvent(
                timestamp=timestamp,
                assister=assister,
                victim=victim,
                is_flash=match.group("assist_type").startswith("flash"),
            )

        match = _BOMB_PLANT.match(content)
        if match is not None:
            planter = _parse_player(match.group("player"))
            if planter is None:
                return None
            state.bomb_planter = planter
            state.bombsite = match.group("bombsite")
            return BombEvent(
                timestamp=timestamp,
                player=planter,
                action=BombAction.PLANT,
                bombsite=state.bombsite,
            )

        match = _BOMB_DEFUSE_START.match(content)
        if match is not None:
            defuser = _parse_player(match.group("player"))
            if defuser is None:
                return None
            state.bomb_defuser = defuser
            return _CONSUMED

        if _BOMB_DEFUSED.match(content):
            if state.bomb_defuser is None:
                logger.warning("Bomb defused at %s but no defuser was tracked", timestamp)
                return None
            return BombEvent(
                timestamp=timestamp,
                player=state.bomb_defuser,
                action=BombAction.DEFUSE,
                bombsite=state.bombsite,
            )

        if _BOMB_EXPLODED.match(content):
            if state.bomb_planter is None:
                logger.warning("Bomb exploded at %s but no planter was tracked", timestamp)
                return None
            return BombEvent(
                timestamp=timestamp,
                player=state.bomb_planter,
                action=BombAction.EXPLODE,
                bombsite=state.bombsite,
            )

        return None


_CONSUMED = object()


def _ends_round_payload(content: str) -> bool:
    return (
        content.startswith("ACCOLADE")
        or _ROUND_START_MARKER in content
        or content.startswith("Game Over:")
    )


def _is_bot_only(event: GameEvent) -> bool:
    if isinstance(event, (KillEvent, AttackEvent)):
        return event.attacker.is_bot and event.victim.is_bot
    if isinstance(event, AssistEvent):
        return event.assister.is_bot and event.victim.is_bot
    return False


def _parse_player(token: str) -> PlayerRef | None:
    match = _PLAYER.match(token)
    if match is None:
        return None
    steam_id = match.group("steam_id")
    return PlayerRef(
        name=match.group("name"),
        slot=int(match.group("slot")),
        steam_id=None if steam_id == "BOT" else steam_id,
        team=match.group("team") or None,
    )


def _parse_iso_timestamp(value: str) -> datetime | None:
    normalized = _ISO_EXTRA_FRACTION.sub(r"\1", value.strip())
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def _parse_prefix_timestamp(date_part: str, time_part: str) -> datetime | None:
    try:
        return datetime.strptime(f"{date_part} {time_part}", "%m/%d/%Y %H:%M:%S")
    except ValueError:
        return None


__all__ = ["EventStream", "LogParser", "ParseStats"]
