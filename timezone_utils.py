from datetime import datetime
import pytz

IST = pytz.timezone('Asia/Kolkata')

def get_ist_time_naive():
    """Get current IST time as naive datetime for database storage"""
    return datetime.now(IST).replace(tzinfo=None)

def parse_to_ist_naive(value):
    """
    Parse an ISO-8601 timestamp into a naive IST datetime.

    Aware values are converted to IST; naive values are taken to be IST already.
    Raises ValueError for anything that is not an ISO-8601 string or datetime.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported datetime value: {value!r}")

    if dt.tzinfo is None:
        return dt
    return dt.astimezone(IST).replace(tzinfo=None)
