"""
Park activities ("things to do") feed.
"""

from typing import Any, Dict, List, Optional

import aiohttp

from ..config import NPS_API_BASE_URL, REQUEST_TIMEOUT_SECONDS, get_logger, get_nps_api_key
from ..csv_output import rows_to_csv
from .base import FeedClient

logger = get_logger(__name__)

ACTIVITY_COLUMNS = [
    "id", "title", "shortDescription", "activityType", "location",
    "season", "timeOfDay", "url", "isReservationRequired", "arePetsPermitted",
]


class ActivitiesFetcher(FeedClient):
    def __init__(self, api_key: Optional[str] = None, base_url: str = NPS_API_BASE_URL,
                 session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = REQUEST_TIMEOUT_SECONDS):
        super().__init__(base_url, api_key if api_key is not None else get_nps_api_key(), session, timeout)

    async def fetch_activities(self, park_code: str = 'yose') -> List[Dict[str, Any]]:
        """Fetch the raw activity records of a park."""
        payload = await self.get_json('thingstodo', {'parkCode': park_code})
        activities = payload.get('data') or []
        logger.info(f"[{park_code}] Successfully fetched {len(activities)} activities")
        return activities


def _yes_no(value: Any) -> str:
    return 'Yes' if value in (True, 'true', 'True', '1', 1) else 'No'


def _joined(value: Any) -> str:
    if isinstance(value, list):
        return ', '.join(str(v) for v in value)
    return value or ''


def process_activities(activities: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Project raw activity records onto the report columns."""
    return [
        {
            "id": activity.get('id'),
            "title": activity.get('title'),
            "shortDescription": activity.get('shortDescription'),
            "activityType": ', '.join(a.get('name', '') for a in activity.get('activities') or []),
            "location": activity.get('location'),
            "season": _joined(activity.get('season')),
            "timeOfDay": _joined(activity.get('timeOfDay')),
            "url": activity.get('url'),
            "isReservationRequired": _yes_no(activity.get('isReservationRequired')),
            "arePetsPermitted": _yes_no(activity.get('arePetsPermitted')),
        }
        for activity in activities
    ]


def activities_to_csv(rows: List[Dict[str, Any]]) -> str:
    return rows_to_csv(rows)


def activities_sql_schema(park_code: str = 'yose') -> Dict[str, Any]:
    return {
        "table_name": f"{park_code}_activities",
        "columns": [{"name": column, "type": "TEXT"} for column in ACTIVITY_COLUMNS],
    }


def activities_report_filename(park_code: str) -> str:
    return f"{park_code}-activities.csv"


def build_activities_report(activities: List[Dict[str, Any]], park_code: str = 'yose',
                            park_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Activities CSV and its query metadata.

    Returns:
        ``{'data': csv_text, 'metadata': {...}}``
    """
    park_name = park_name or park_code
    return {
        'data': activities_to_csv(process_activities(activities)),
        'metadata': {
            "query_type": "sql",
            "sql_schema": activities_sql_schema(park_code),
            "sql_description": (
                f"{park_name} activities. Contains information about various activities available in {park_name}. "
                "Sample data: title='Backpacking', activityType='Hiking, Camping', location='Yosemite Valley', "
                "season='Spring, Summer, Fall', isReservationRequired='Yes', arePetsPermitted='No'"
            ),
        },
    }
