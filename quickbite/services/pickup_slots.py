"""
Pickup slot configuration stored in a store's category field.

A configured store keeps ``CFG:`` followed by JSON of the form
``{"slots": [{"time": "11:30 AM", "limit": 10}]}``. Any other value is a
plain category and the store uses the default slots.
"""
import json
from datetime import datetime, time, timedelta
from typing import Dict, List, Optional

CONFIG_PREFIX = 'CFG:'
DEFAULT_OPEN = time(10, 0)
DEFAULT_CLOSE = time(18, 0)
SLOT_MINUTES = 30


def parse_slot_config(category) -> Optional[Dict]:
    if not isinstance(category, str) or not category.startswith(CONFIG_PREFIX):
        return None
    try:
        raw = json.loads(category[len(CONFIG_PREFIX):])
    except ValueError:
        return None
    if not isinstance(raw, dict):
        return None

    slots = []
    for entry in raw.get('slots') or []:
        if not isinstance(entry, dict) or not str(entry.get('time') or '').strip():
            continue
        try:
            limit = int(entry.get('limit') or 0)
        except (TypeError, ValueError):
            limit = 0
        slots.append({'time': str(entry['time']).strip(), 'limit': max(limit, 0)})
    return {'slots': slots}


def encode_slot_config(slots) -> str:
    cleaned = []
    for entry in slots or []:
        slot_time = str(entry.get('time') or '').strip()
        if not slot_time:
            raise ValueError('Every pickup slot needs a time')
        limit = int(entry.get('limit') or 0)
        if limit < 0:
            raise ValueError('Pickup slot limit cannot be negative')
        cleaned.append({'time': slot_time, 'limit': limit})
    return CONFIG_PREFIX + json.dumps({'slots': cleaned})


def display_category(category):
    """The human category, hiding an encoded slot configuration"""
    if isinstance(category, str) and category.startswith(CONFIG_PREFIX):
        return None
    return category


def format_slot(value: time) -> str:
    hour = value.hour % 12 or 12
    period = 'PM' if value.hour >= 12 else 'AM'
    return f'{hour}:{value.minute:02d} {period}'


def default_time_slots() -> List[str]:
    """10:00 AM to 6:00 PM inclusive, every 30 minutes"""
    slots = []
    current = datetime.combine(datetime.utcnow().date(), DEFAULT_OPEN)
    end = datetime.combine(current.date(), DEFAULT_CLOSE)
    while current <= end:
        slots.append(format_slot(current.time()))
        current += timedelta(minutes=SLOT_MINUTES)
    return slots


def _slot_hour(label) -> Optional[int]:
    """24-hour clock hour of a label such as "6:30 PM", or None if unreadable"""
    try:
        clock, period = label.split()
        hour = int(clock.split(':')[0])
    except ValueError:
        return None
    period = period.upper()
    if period == 'PM' and hour != 12:
        hour += 12
    elif period == 'AM' and hour == 12:
        hour = 0
    return hour


def store_slots(category) -> List[Dict]:
    """Slots offered by a store; limit 0 means unlimited. Nothing past the 6 PM hour is offered."""
    config = parse_slot_config(category)
    if config and config['slots']:
        return [s for s in config['slots'] if (_slot_hour(s['time']) or 0) <= DEFAULT_CLOSE.hour]
    return [{'time': t, 'limit': 0} for t in default_time_slots()]


def slot_availability(category, booked: Dict[str, int]) -> List[Dict]:
    result = []
    for slot in store_slots(category):
        taken = booked.get(slot['time'], 0)
        remaining = None if slot['limit'] == 0 else max(slot['limit'] - taken, 0)
        result.append({
            'time': slot['time'],
            'limit': slot['limit'],
            'booked': taken,
            'remaining': remaining,
            'available': remaining is None or remaining > 0,
        })
    return result
