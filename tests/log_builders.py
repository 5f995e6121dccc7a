"""Builders for CS2 server log lines used across the test suite."""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import datetime, timedelta

BASE_TIME = datetime(2024, 4, 20, 17, 0, 0)

ROUND_START = 'World triggered "Round_Start"'
ROUND_END = 'World triggered "Round_End"'


def player(name: str, account: int, team: str = "CT", slot: int = 2) -> str:
    return f"{name}<{slot}><[U:1:{account}]><{team}>"


def bot(name: str, team: str = "TERRORIST", slot: int = 9) -> str:
    return f"{name}<{slot}><BOT><{team}>"


def attack(attacker: str, victim: str, *, health: int, damage: int = 27, weapon: str = "ak47") -> str:
    return (
        f'"{attacker}" [10 20 30] attacked "{victim}" [40 50 60] with "{weapon}" '
        f'(damage "{damage}") (damage_armor "3") (health "{health}") (armor "97") (hitgroup "chest")'
    )


def kill(attacker: str, victim: str, *, weapon: str = "ak47", headshot: bool = False) -> str:
    line = f'"{attacker}" [10 20 30] killed "{victim}" [40 50 60] with "{weapon}"'
    if headshot:
        line += " (headshot)"
    return line


def assist(assister: str, victim: str, *, flash: bool = False) -> str:
    verb = "flash-assisted" if flash else "assisted"
    return f'"{assister}" {verb} killing "{victim}"'


def scoreboard(account_ids: Sequence[int]) -> list[str]:
    lines = ["JSON_BEGIN{", '"name": "round_stats",', '"fields" : "accountid, team, money, kills",']
    for index, account_id in enumerate(account_ids):
        lines.append(f'"player_{index}" : "   {account_id},     2,  4250,     1"')
    lines.append("JSON_END}")
    return lines


def accolade_line(accolade_type: str, name: str, slot: int, value: float, position: int, score: float) -> str:
    return (
        f"ACCOLADE, FINAL: {{{accolade_type}}},\t{name}<{slot}>,\t"
        f"VALUE: {value},\tPOS: {position},\tSCORE: {score}"
    )


def game_over(map_name: str, team1_score: int, team2_score: int, minutes: int = 40) -> str:
    return f"Game Over: competitive mg_active {map_name} score {team1_score}:{team2_score} after {minutes} min"


def log_line(content: str, at: datetime) -> str:
    return json.dumps(
        {
            "time": at.strftime("%Y-%m-%dT%H:%M:%S.123456789Z"),
            "log": f"L {at:%m/%d/%Y - %H:%M:%S}: {content}\n",
        }
    )


class LogBuilder:
    """Appends JSON log records one second apart."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start
        self.lines: list[str] = []

    def add(self, *contents: str) -> LogBuilder:
        for content in contents:
            self.now += timedelta(seconds=1)
            self.lines.append(log_line(content, self.now))
        return self

    def text(self) -> str:
        return "\n".join(self.lines) + "\n"


ALICE = player("alice", 100, "CT", 2)
BOB = player("bob", 200, "TERRORIST", 3)
CAROL = player("carol", 300, "CT", 4)


def two_round_game(builder: LogBuilder, *, map_name: str = "de_dust2") -> LogBuilder:
    """Round 1: alice kills bob (headshot, carol assists). Round 2: bob kills alice. Final 1:1."""
    builder.add(
        ROUND_START,
        attack(ALICE, BOB, health=73),
        attack(ALICE, BOB, health=0),
        kill(ALICE, BOB, headshot=True),
        assist(CAROL, BOB),
        ROUND_END,
        *scoreboard([100, 200, 300, 0]),
        ROUND_START,
        attack(BOB, ALICE, health=50),
        kill(BOB, ALICE),
        ROUND_END,
        accolade_line("mvp", "alice", 2, 1, 1, 20),
        accolade_line("hsp", "bob", 3, 50.0, 1, 10),
        game_over(map_name, 1, 1),
    )
    return builder
