import json
import os

from .log import Color, log

DEFAULT_OPTIONS_PATH = "/data/options.json"

STREAM_TYPES = ("shoutcast_v1", "shoutcast_v2", "icecast", "icy")

DEFAULTS = {
    "interval": 5,
    "timestamps": False,
    "debug": False,
    "icy_max_attempts": 5,
    "icy_max_redirect": 3,
    "http_timeout": 10,
    "mqtt_enabled": False,
    "mqtt_host": "localhost",
    "mqtt_port": 1883,
    "mqtt_topic": "radio/metadata",
    "mqtt_user": None,
    "mqtt_pass": None,
}

# ---------------------------------------------------------
# Load config
# ---------------------------------------------------------

def options_path(path=None):
    return path or os.environ.get("RADIO_METADATA_OPTIONS") or DEFAULT_OPTIONS_PATH


def load_options(path=None):
    try:
        with open(options_path(path), "r") as f:
            options = json.load(f)
    except (OSError, ValueError):
        return {}
    return options if isinstance(options, dict) else {}


def get_option(options, key):
    value = options.get(key)
    return DEFAULTS.get(key) if value is None else value


def load_streams(options):
    streams = {}
    for entry in options.get("streams", []):
        name = entry.get("name")
        url = entry.get("url")
        stype = entry.get("type", "icy")
        if not name or not url:
            continue
        if stype not in STREAM_TYPES:
            log(f"{name}: unknown stream type {stype!r}, skipped", Color.YELLOW, level="warning")
            continue
        streams[name] = {"url": url, "type": stype}
    return streams
