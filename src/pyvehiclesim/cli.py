"""Command-line entry point: simulate one vehicle and publish it over MQTT.

Example::

    pyvehiclesim --vehicle-id car-1 --route waypoints/ring.itn --host broker.local -v

Options fall back to ``VSIM_*`` environment variables (see
:meth:`pyvehiclesim.config.SimulatorConfig.from_env`).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence

from pyvehiclesim.config import SimulatorConfig
from pyvehiclesim.exceptions import RouteFileError, SimConfigError, TransportError
from pyvehiclesim.runner import SimulationRunner, create_runner

_LOG = logging.getLogger("pyvehiclesim")

EXIT_TRANSPORT_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pyvehiclesim",
        description="Simulate a vehicle driving a closed route and publish its sensor data via MQTT.",
    )
    parser.add_argument("--vehicle-id", help="Vehicle identifier (env: VSIM_VEHICLE_ID)")
    parser.add_argument("--route", dest="route_file", help="Waypoint file, .itn or .json (env: VSIM_ROUTE_FILE)")
    parser.add_argument("--host", dest="mqtt_host", help="MQTT broker host (default: localhost)")
    parser.add_argument("--port", dest="mqtt_port", type=int, help="MQTT broker port (default: 1883)")
    parser.add_argument("--username", dest="mqtt_username", help="MQTT username")
    parser.add_argument("--password", dest="mqtt_password", help="MQTT password")
    parser.add_argument("--tls", dest="mqtt_tls", action="store_true", default=None, help="Connect with TLS")
    parser.add_argument("--topic-prefix", help="First topic level (default: vehicles)")
    parser.add_argument(
        "--interval",
        dest="publish_interval",
        type=float,
        help="Seconds between published snapshots (default: 1.0)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def load_config(args: argparse.Namespace) -> SimulatorConfig:
    return SimulatorConfig.from_env(
        vehicle_id=args.vehicle_id,
        route_file=args.route_file,
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        mqtt_username=args.mqtt_username,
        mqtt_password=args.mqtt_password,
        mqtt_tls=args.mqtt_tls,
        topic_prefix=args.topic_prefix,
        publish_interval=args.publish_interval,
    )


async def _serve(runner: SimulationRunner) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, runner.request_stop)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform/thread; Ctrl+C still raises KeyboardInterrupt.
            pass
    await runner.run()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    try:
        config = load_config(args)
        runner = create_runner(config)
    except (SimConfigError, RouteFileError) as exc:
        _LOG.error("%s", exc)
        return EXIT_CONFIG_ERROR

    if not runner.simulator.waypoints:
        _LOG.warning("No route given; vehicle %s will stay at its start position", config.vehicle_id)

    try:
        asyncio.run(_serve(runner))
    except TransportError as exc:
        _LOG.error("%s", exc)
        return EXIT_TRANSPORT_ERROR
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
