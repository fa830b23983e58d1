import argparse
import asyncio
from functools import partial

import paho.mqtt.client as mqtt

from . import __version__
from .config import STREAM_TYPES, get_option, load_options, load_streams
from .http_fetchers import (
    load_from_url,
    read_icecast_metadata,
    read_shoutcast_v1_metadata,
    read_shoutcast_v2_metadata,
)
from .icy_reader import read_icy_metadata
from .log import Color, configure, log

PRINT_CHANGES_ONLY = True

# ---------------------------------------------------------
# Method selection
# ---------------------------------------------------------

async def get_metadata_async(url: str, stype: str, options: dict) -> str | None:
    if stype == "icy":
        return await read_icy_metadata(
            url,
            get_option(options, "icy_max_attempts"),
            get_option(options, "icy_max_redirect"),
        )

    fetch = partial(load_from_url, timeout=get_option(options, "http_timeout"))
    if stype == "shoutcast_v1":
        return await read_shoutcast_v1_metadata(url, fetch=fetch)
    if stype == "shoutcast_v2":
        return await read_shoutcast_v2_metadata(url, fetch=fetch)
    if stype == "icecast":
        return await read_icecast_metadata(url, fetch=fetch)

    raise ValueError(f"unknown stream type {stype!r}")

# ---------------------------------------------------------
# MQTT
# ---------------------------------------------------------

class MqttPublisher:
    def __init__(self, options):
        self.enabled = get_option(options, "mqtt_enabled")
        self.host = get_option(options, "mqtt_host")
        self.port = get_option(options, "mqtt_port")
        self.topic = get_option(options, "mqtt_topic")
        self.user = get_option(options, "mqtt_user")
        self.password = get_option(options, "mqtt_pass")
        self.client = None

    def connect(self):
        if not self.enabled:
            return

        client = mqtt.Client(callback_api_version=mqtt.CallbackAPIVersion.VERSION2)

        if self.user and self.password:
            client.username_pw_set(self.user, self.password)

        try:
            client.connect(self.host, self.port, 60)
            client.loop_start()
            self.client = client
            log(f"MQTT connected to {self.host}:{self.port}", Color.MAGENTA)
        except OSError as e:
            log(f"MQTT connection failed: {e}", Color.RED, level="error")

    def publish(self, name, title):
        if not (self.enabled and self.client):
            return
        topic = f"{self.topic}/{name}"
        try:
            info = self.client.publish(topic, title, qos=0, retain=True)
        except ValueError as e:
            log(f"MQTT publish failed: {e}", Color.RED, level="error")
            return
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            log(f"MQTT publish failed: {mqtt.error_string(info.rc)}", Color.RED, level="error")
            return
        log(f"MQTT → {topic}: {title}", Color.MAGENTA)

    def disconnect(self):
        if self.client:
            self.client.loop_stop()
            self.client.disconnect()
            self.client = None

# ---------------------------------------------------------
# Async polling
# ---------------------------------------------------------

class StationMonitor:
    def __init__(self, options, publisher=None):
        self.options = options
        self.streams = load_streams(options)
        self.last_titles = {name: None for name in self.streams}
        self.publisher = publisher or MqttPublisher(options)

    async def poll_single(self, name, info):
        title = await get_metadata_async(info["url"], info["type"], self.options)
        if not title:
            return

        if PRINT_CHANGES_ONLY and title == self.last_titles[name]:
            return

        self.last_titles[name] = title
        log(f"{name}: {title}", Color.GREEN)
        self.publisher.publish(name, title)

    async def poll_once(self):
        tasks = [self.poll_single(name, info) for name, info in self.streams.items()]
        await asyncio.gather(*tasks)

    async def poll_loop(self):
        interval = get_option(self.options, "interval")
        while True:
            await self.poll_once()
            await asyncio.sleep(interval)

# ---------------------------------------------------------
# Main
# ---------------------------------------------------------

def build_parser():
    parser = argparse.ArgumentParser(description="Internet radio now-playing monitor")
    parser.add_argument("--options", help="path to the add-on options.json")
    parser.add_argument("--once", metavar="URL", help="look up a single stream and exit")
    parser.add_argument("--type", choices=STREAM_TYPES, default="icy", help="metadata method for --once")
    parser.add_argument("--debug", action="store_true", help="print debug messages")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    options = load_options(args.options)
    configure(
        debug=args.debug or get_option(options, "debug"),
        timestamps=get_option(options, "timestamps"),
    )

    if args.once:
        title = asyncio.run(get_metadata_async(args.once, args.type, options))
        print(title or "")
        return 0 if title else 1

    monitor = StationMonitor(options)
    if not monitor.streams:
        log("No streams configured", Color.YELLOW, level="warning")
        return 1

    log(f"Start radio metadata monitor v{__version__}", Color.CYAN)
    monitor.publisher.connect()
    try:
        asyncio.run(monitor.poll_loop())
    except KeyboardInterrupt:
        pass
    finally:
        monitor.publisher.disconnect()
    return 0
