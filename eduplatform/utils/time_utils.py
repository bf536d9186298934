import pytz
from datetime import datetime

from eduplatform.config import Config

def get_local_time():
    """
    Returns the current time in the configured APP_TIMEZONE as a naive datetime.
    """
    return datetime.now(pytz.timezone(Config.APP_TIMEZONE)).replace(tzinfo=None)
