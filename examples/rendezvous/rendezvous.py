#!/usr/bin/env python3
"""
Punch a WireGuard tunnel between two NATed hosts.

Both hosts point ``--signal-dir`` at a directory they share (a synced folder,
a network mount, a checked out repository) and run this script with the same
``--topic``:

1. On the responder:
   wgpunch-demo --role responder --signal-dir /shared/signals --sudo

2. On the initiator, with the responder's public key:
   wgpunch-demo --role initiator --signal-dir /shared/signals --sudo \\
       --peer-public-key <key>

The responder prints a wg-quick configuration and an onetun command once the
tunnel is up. An announcement can also be appended by hand::

   echo "WG: 198.51.100.9:40000:50000" >> /shared/signals/wgpunch.log
"""

import argparse
import logging
import sys

import multiaddr
import trio

from wgpunch import (
    FileSignalChannel,
    RendezvousConfig,
    Role,
    SignalConfig,
    StunConfig,
    TimeoutConfig,
    TunnelConfig,
    new_coordinator,
)
from wgpunch.custom_types import (
    TTopic,
)
from wgpunch.discovery.stun.config import (
    DEFAULT_STUN_SERVER,
)
from wgpunch.exceptions import (
    BaseWgPunchError,
)
from wgpunch.rendezvous.config import (
    DEFAULT_SESSION_TIMEOUT,
    DEFAULT_SOURCE_PORT,
)
from wgpunch.signal.config import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TOPIC,
)

# Create logger for this example
logger = logging.getLogger("wgpunch_demo")


def build_config(args: argparse.Namespace) -> RendezvousConfig:
    return RendezvousConfig(
        role=Role(args.role),
        source_port=args.port,
        private_key=args.private_key,
        peer_public_key=args.peer_public_key,
        timeouts=TimeoutConfig(session=args.timeout, hold=args.hold),
        stun=StunConfig(server=multiaddr.Multiaddr(args.stun_server)),
        signal=SignalConfig(topic=TTopic(args.topic), poll_interval=args.poll),
        tunnel=TunnelConfig(
            interface=args.interface,
            command_prefix=("sudo",) if args.sudo else (),
        ),
    )


def print_descriptor(descriptor: str) -> None:
    print(descriptor, flush=True)


async def run(args: argparse.Namespace) -> None:
    config = build_config(args)
    channel = FileSignalChannel(args.signal_dir, config.signal)
    coordinator = new_coordinator(config, channel, print_descriptor)
    if coordinator.peer_keys is not None:
        logger.info(
            f"Generated initiator key pair, public key {coordinator.peer_public_key}"
        )
    logger.info(f"Our public key: {coordinator.keys.public_key}")
    session = await coordinator.run()
    logger.info(f"Session {session.session_id} finished")


def main() -> None:
    parser = argparse.ArgumentParser(
        description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--role",
        choices=[role.value for role in Role],
        required=True,
        help="Which end of the tunnel this host is",
    )
    parser.add_argument(
        "--signal-dir", required=True, help="Directory shared by both hosts"
    )
    parser.add_argument(
        "--topic", default=DEFAULT_TOPIC, help=f"Topic name (default: {DEFAULT_TOPIC})"
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=DEFAULT_SOURCE_PORT,
        help=f"Reserved UDP port (default: {DEFAULT_SOURCE_PORT})",
    )
    parser.add_argument(
        "--stun-server",
        default=DEFAULT_STUN_SERVER,
        help=f"STUN server multiaddr (default: {DEFAULT_STUN_SERVER})",
    )
    parser.add_argument("--private-key", help="Our WireGuard private key (base64)")
    parser.add_argument("--peer-public-key", help="Peer WireGuard public key")
    parser.add_argument("--interface", default="wg0", help="Interface name")
    parser.add_argument(
        "--sudo", action="store_true", help="Run ip and wg through sudo"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_SESSION_TIMEOUT,
        help=f"Session deadline in seconds (default: {DEFAULT_SESSION_TIMEOUT})",
    )
    parser.add_argument(
        "--hold",
        type=float,
        default=None,
        help="Seconds to keep the tunnel up (default: until the deadline)",
    )
    parser.add_argument(
        "--poll",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"Signal poll interval in seconds (default: {DEFAULT_POLL_INTERVAL})",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Let wgpunch records reach the handler configured above
    wgpunch_logger = logging.getLogger("wgpunch")
    wgpunch_logger.setLevel(logging.DEBUG if args.verbose else logging.INFO)
    wgpunch_logger.propagate = True

    try:
        trio.run(run, args)
    except BaseWgPunchError as error:
        logger.error(f"{error}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
