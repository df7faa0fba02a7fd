"""
WireGuard launcher driving the ``ip`` and ``wg`` command line tools.
"""

from collections.abc import (
    Sequence,
)
import logging

import trio

from wgpunch.abc import (
    ITunnelLauncher,
)

from .config import (
    TunnelConfig,
)
from .errors import (
    TunnelLaunchError,
)
from .request import (
    TunnelHandle,
    TunnelRequest,
)

logger = logging.getLogger(__name__)


class WireGuardLauncher(ITunnelLauncher):
    """
    Brings up a point-to-point WireGuard interface with exactly one peer.

    The private key is passed on stdin so it never shows up in the process
    list. If any step fails the half-configured interface is deleted again.
    """

    def __init__(self, config: TunnelConfig | None = None) -> None:
        self.config = config or TunnelConfig()

    async def launch(self, request: TunnelRequest) -> TunnelHandle:
        interface = self.config.interface
        await self._run(["ip", "link", "add", "dev", interface, "type", "wireguard"])
        try:
            await self._run(
                ["ip", "address", "add", "dev", interface, str(request.address)]
            )
            await self._run(
                self._wg_set_command(request),
                stdin=request.private_key.encode("ascii") + b"\n",
            )
            await self._run(["ip", "link", "set", "dev", interface, "up"])
        except BaseException:
            with trio.CancelScope(shield=True):
                await self._delete_link(interface)
            raise

        logger.info(
            f"Interface {interface} up at {request.address}, "
            f"listening on port {request.listen_port}"
        )
        return TunnelHandle(interface, request)

    async def shutdown(self, handle: TunnelHandle) -> None:
        await self._run(["ip", "link", "del", "dev", handle.interface])
        logger.info(f"Interface {handle.interface} removed")

    def _wg_set_command(self, request: TunnelRequest) -> list[str]:
        command = [
            "wg",
            "set",
            self.config.interface,
            "listen-port",
            str(request.listen_port),
            "private-key",
            "/dev/stdin",
            "peer",
            request.peer_public_key,
            "allowed-ips",
            str(request.allowed_ips),
        ]
        if request.dial_peer:
            peer_ip, peer_port = request.peer_endpoint.address
            command += [
                "endpoint",
                f"{peer_ip}:{peer_port}",
                "persistent-keepalive",
                str(request.persistent_keepalive),
            ]
        return command

    async def _delete_link(self, interface: str) -> None:
        try:
            await self._run(["ip", "link", "del", "dev", interface])
        except TunnelLaunchError as error:
            logger.warning(f"Cleanup of {interface} failed: {error}")

    async def _run(self, args: Sequence[str], stdin: bytes = b"") -> None:
        command = [*self.config.command_prefix, *args]
        logger.debug(f"Running {' '.join(command)}")
        try:
            with trio.fail_after(self.config.command_timeout):
                result = await trio.run_process(
                    command,
                    stdin=stdin,
                    capture_stdout=True,
                    capture_stderr=True,
                    check=False,
                )
        except trio.TooSlowError as error:
            raise TunnelLaunchError(
                f"{args[0]} timed out after {self.config.command_timeout}s"
            ) from error
        except OSError as error:
            raise TunnelLaunchError(f"Cannot run {args[0]}: {error}") from error

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise TunnelLaunchError(
                f"{' '.join(args[:3])} exited with {result.returncode}: {stderr}"
            )
