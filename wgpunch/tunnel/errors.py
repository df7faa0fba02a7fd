from wgpunch.exceptions import (
    BaseWgPunchError,
)


class TunnelLaunchError(BaseWgPunchError):
    """Raised when the tunnel interface cannot be brought up."""
