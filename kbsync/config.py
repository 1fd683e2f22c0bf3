from pathlib import Path
import dotenv
import logging
import os


ROOT = Path(__file__).parent.parent

dotenv.load_dotenv(ROOT / '.env')

# Logging configuration
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given name"""
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    return logger


# Remote document store
DEFAULT_EDGE_CLOUD_CONTROLLER_HOST = 'https://controller.thetaedgecloud.com'
EDGE_CLOUD_CONTROLLER_HOST = os.environ.get('EDGE_CLOUD_CONTROLLER_HOST', DEFAULT_EDGE_CLOUD_CONTROLLER_HOST)

# Upstream feeds
RIOT_API_BASE_URL = os.environ.get('RIOT_API_BASE_URL', 'https://esports-api.lolesports.com/persisted/gw')
NPS_API_BASE_URL = os.environ.get('NPS_API_BASE_URL', 'https://developer.nps.gov/api/v1')

# Sync defaults
DEFAULT_CLIENT_ID = 'default'
DEFAULT_SYNC_INTERVAL_SECONDS = 10 * 60
DEFAULT_RATE_LIMIT_SECONDS = 0.5
DEFAULT_PAGE_SIZE = 30
REQUEST_TIMEOUT_SECONDS = 60


def get_riot_api_key() -> str:
    """Get the schedule feed API key"""
    return os.environ.get('RIOT_API_KEY', '')


def get_nps_api_key() -> str:
    """Get the activities feed API key"""
    return os.environ.get('NPS_API_KEY', '')
