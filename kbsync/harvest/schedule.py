"""
League schedule harvesting.

The schedule feed is paginated backwards in time: the first page holds the
newest events and every page may carry an ``older`` token pointing at the next
one. The harvester follows the tokens until a page has none and returns all
events in fetch order. The report stage then sorts them by start time and
projects them into the CSV table uploaded to the knowledge base.
"""

from dataclasses import dataclass, asdict, fields
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import aiohttp

from ..config import RIOT_API_BASE_URL, REQUEST_TIMEOUT_SECONDS, get_logger, get_riot_api_key
from ..csv_output import rows_to_csv
from .base import FeedClient

logger = get_logger(__name__)

REPORT_TIMEZONE = ZoneInfo('America/Los_Angeles')
REPORT_TIMEZONE_LABEL = 'PST'
UNKNOWN = 'TBD'


class PaginatedHarvester(FeedClient):
    """Walks the getSchedule endpoint of a league to its oldest page."""

    def __init__(self, api_key: Optional[str] = None, base_url: str = RIOT_API_BASE_URL,
                 session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = REQUEST_TIMEOUT_SECONDS):
        super().__init__(base_url, api_key if api_key is not None else get_riot_api_key(), session, timeout)

    async def fetch_page(self, league_id: str, page_token: Optional[str] = None) -> Dict[str, Any]:
        """Fetch one schedule page; without a token this is the newest page."""
        params = {'hl': 'en-US', 'leagueId': league_id}
        if page_token:
            params['pageToken'] = page_token
        payload = await self.get_json('getSchedule', params)
        return payload['data']['schedule']

    async def harvest(self, league_id: str) -> List[Dict[str, Any]]:
        """
        Fetch every page of a league's schedule.

        Returns:
            The events of all pages concatenated in fetch order (newest page first)
        """
        events: List[Dict[str, Any]] = []
        seen_tokens = set()
        page_token = None
        pages = 0

        while True:
            schedule = await self.fetch_page(league_id, page_token)
            pages += 1
            events.extend(schedule.get('events') or [])

            page_token = (schedule.get('pages') or {}).get('older')
            if not page_token:
                break
            if page_token in seen_tokens:
                logger.warning(f"[{league_id}] Page token {page_token} returned twice, stopping pagination")
                break
            seen_tokens.add(page_token)

        logger.info(f"[{league_id}] Harvested {len(events)} events from {pages} pages")
        return events


@dataclass
class ScheduleEvent:
    """One row of the schedule and results table."""
    date: str
    start_time: str
    state: str
    stage: str
    team1: str
    team1_score: Any
    team2: str
    team2_score: Any
    winner: str
    loser: str

    @classmethod
    def from_raw(cls, event: Dict[str, Any]) -> 'ScheduleEvent':
        start = parse_start_time(event.get('startTime'))
        if start is not None:
            local = start.astimezone(REPORT_TIMEZONE)
            date = f"{local.strftime('%B')} {local.day} {local.year}"
            start_time = f"{local.hour % 12 or 12}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'} {REPORT_TIMEZONE_LABEL}"
        else:
            date, start_time = UNKNOWN, UNKNOWN

        teams = list((event.get('match') or {}).get('teams') or [])
        teams += [{}] * (2 - len(teams))
        team1, team2 = teams[0], teams[1]
        team1_name = team1.get('name') or UNKNOWN
        team2_name = team2.get('name') or UNKNOWN

        state = event.get('state') or ''
        winner, loser = UNKNOWN, UNKNOWN
        if state == 'completed':
            if (team1.get('result') or {}).get('outcome') == 'win':
                winner, loser = team1_name, team2_name
            else:
                winner, loser = team2_name, team1_name

        return cls(
            date=date,
            start_time=start_time,
            state=state,
            stage=event.get('blockName') or '',
            team1=team1_name,
            team1_score=_game_wins(team1),
            team2=team2_name,
            team2_score=_game_wins(team2),
            winner=winner,
            loser=loser,
        )


def _game_wins(team: Dict[str, Any]) -> Any:
    wins = (team.get('result') or {}).get('gameWins')
    return UNKNOWN if wins is None else wins


def parse_start_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        logger.warning(f"Unparseable start time: {value}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sort_events(events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort raw events by start time, ascending. Events without a start time go last."""
    latest = datetime.max.replace(tzinfo=timezone.utc)
    return sorted(events, key=lambda event: parse_start_time(event.get('startTime')) or latest)


def schedule_sql_schema() -> Dict[str, Any]:
    return {
        "columns": [
            {"name": "date", "type": "DATE"},
            {"name": "start_time", "type": "TEXT"},
            {"name": "state", "type": "TEXT"},
            {"name": "stage", "type": "TEXT"},
            {"name": "team1", "type": "TEXT"},
            {"name": "team1_score", "type": "INTEGER"},
            {"name": "team2", "type": "TEXT"},
            {"name": "team2_score", "type": "INTEGER"},
            {"name": "winner", "type": "TEXT"},
            {"name": "loser", "type": "TEXT"},
        ]
    }


def schedule_report_filename(league_id: str) -> str:
    return f"{league_id}_schedule_and_results.csv"


def build_schedule_report(events: List[Dict[str, Any]], league_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Project harvested events into the schedule CSV and its query metadata.

    Returns:
        ``{'data': csv_text, 'metadata': {...}}``
    """
    rows = [asdict(ScheduleEvent.from_raw(event)) for event in sort_events(events)]
    data = rows_to_csv(rows)
    if data:
        data += '\n'

    metadata = {
        "query_type": "sql",
        "sql_schema": schedule_sql_schema(),
        "sql_description": (
            f"{league_name or 'League'} schedule. The 'stage' column indicates which part of the "
            "event the game belongs to (e.g. 'Play-Ins', 'Swiss', etc). Sample data: date='September 25 2024', "
            "start_time='12:00 PM PST', state='completed', stage='Play-Ins', team1='Movistar KOI', team1_score=2, "
            "team2='MGN Vikings Esports', team2_score=0, winner='Movistar KOI', loser='MGN Vikings Esports'"
        ),
    }
    return {'data': data, 'metadata': metadata}


SCHEDULE_COLUMNS = [f.name for f in fields(ScheduleEvent)]
