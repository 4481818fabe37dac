"""Shared request parsing helpers for the league routes."""
from datetime import date, datetime, timezone

from flask import request

from darts_league.app import socketio
from darts_league.time_utils import utcnow_naive


def clean_text(value, max_len=200):
    if value is None:
        return ''
    text = str(value).strip()
    return text[:max_len]


def parse_int(value):
    if value is None or value == '' or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_date(raw_value):
    value = clean_text(raw_value, max_len=32)
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def parse_datetime(raw_value):
    value = clean_text(raw_value, max_len=64)
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        return None
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def coerce_bool(raw_value):
    if isinstance(raw_value, bool):
        return raw_value
    if isinstance(raw_value, (int, float)):
        return raw_value == 1
    if raw_value is None:
        return False
    return str(raw_value).strip().lower() in {'1', 'true', 'yes', 'on'}


def season_id_arg():
    return request.args.get('season_id', type=int)


def emit_league_update(event, **payload):
    payload['updated_at'] = utcnow_naive().isoformat()
    socketio.emit(event, payload)
